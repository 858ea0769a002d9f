import itertools

import pytest

from infra_tune.core.errors import UnknownTopology
from infra_tune.core.types import Component, NodeComponents, RoleMap
from infra_tune.topology.classify import (
    MappingComponentLookup,
    classify,
    components_for,
    require_known,
)
from infra_tune.topology.roles import expand


def classify_roles(roles: RoleMap):
    lookup = MappingComponentLookup(expand(roles))
    return classify(roles.puppet_master_host, lookup)


def test_single_host_is_monolithic():
    c = classify_roles(RoleMap(puppet_master_host="m1"))
    assert c.primary_masters == ("m1",)
    assert c.is_monolithic
    assert not c.has_replica
    assert not c.has_compile_masters
    assert not c.has_external_database
    assert c.all_hosts() == ["m1"]


def test_dedicated_console_host_is_split():
    c = classify_roles(RoleMap(puppet_master_host="m1", console_host="c1"))
    assert not c.is_monolithic
    assert c.console_hosts == ("c1",)


def test_full_topology_categories():
    roles = RoleMap(
        puppet_master_host="m1",
        console_host="c1",
        puppetdb_host=("p1", "p2"),
        database_host="d1",
        primary_master_replica="r1",
        compile_master=("cm2", "cm1"),
    )
    c = classify_roles(roles)
    assert c.primary_masters == ("m1",)
    assert c.replica_masters == ("r1",)
    assert c.compile_masters == ("cm1", "cm2")
    assert c.console_hosts == ("c1",)
    assert c.puppetdb_hosts == ("p1", "p2")
    assert c.external_database_hosts == ("d1",)
    assert c.has_external_database
    assert c.disjoint()


def test_replica_is_not_counted_as_compile_console_or_puppetdb():
    c = classify_roles(RoleMap(puppet_master_host="m1", primary_master_replica="r1"))
    assert c.replica_masters == ("r1",)
    assert c.compile_masters == ()
    assert c.console_hosts == ()
    assert c.puppetdb_hosts == ()
    assert c.external_database_hosts == ()
    assert c.is_monolithic


def test_compile_master_with_puppetdb_is_only_a_compile_master():
    roles = RoleMap(puppet_master_host="m1", puppetdb_host=("cm1",), compile_master=("cm1",))
    c = classify_roles(roles)
    assert c.compile_masters == ("cm1",)
    assert c.puppetdb_hosts == ()
    # The database on the first PuppetDB host is also subtracted.
    assert c.external_database_hosts == ()


def test_categories_are_disjoint_for_overlapping_role_assignments():
    """
    Assign hosts from a small pool to every role in many combinations,
    and check the classification stays disjoint with a single primary.

    The console category is only subtracted from the primary and replica,
    so a console host shared with a PuppetDB, database, or compile role
    is covered separately below.
    """
    pool = ["a", "b", "c"]
    for console, pdb, db, replica, cm in itertools.product(pool + [None], repeat=5):
        if console not in (None, "a", replica) and console in (pdb, db, cm):
            continue
        roles = RoleMap(
            puppet_master_host="a",
            console_host=console,
            puppetdb_host=(pdb,) if pdb else (),
            database_host=db,
            primary_master_replica=replica,
            compile_master=(cm,) if cm else (),
        )
        c = classify_roles(roles)
        assert c.disjoint()
        assert c.primary_masters == ("a",)


def test_missing_primary_is_unknown():
    c = classify(None, MappingComponentLookup(expand(RoleMap(console_host="c1"))))
    assert c.is_unknown
    with pytest.raises(UnknownTopology):
        require_known(c)


def test_lookup_falls_back_for_missing_components():
    fallback = MappingComponentLookup({Component.console: {"c9"}})
    lookup = MappingComponentLookup({Component.master: {"m1"}}, fallback=fallback)
    assert lookup.hosts_with(Component.console) == {"c9"}
    assert lookup.hosts_with(Component.master) == {"m1"}


def test_components_for_node():
    lookup = MappingComponentLookup(expand(RoleMap(puppet_master_host="m1", puppetdb_host=("p1",))))
    assert components_for("m1", lookup) == NodeComponents(
        activemq=True, console=True, database=False, orchestrator=True, puppetdb=False
    )
    assert components_for("p1", lookup) == NodeComponents(database=True, puppetdb=True)


def test_console_host_shared_with_puppetdb_lands_in_both_categories():
    """
    Console hosts are not subtracted from the PuppetDB category.
    Such a host is tuned once per category.
    """
    c = classify_roles(RoleMap(puppet_master_host="m1", console_host="x1", puppetdb_host=("x1",)))
    assert c.console_hosts == ("x1",)
    assert c.puppetdb_hosts == ("x1",)
    assert not c.disjoint()

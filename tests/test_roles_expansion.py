import itertools

from infra_tune.core.types import Component, RoleMap
from infra_tune.topology.roles import EXPANSION_RULES, components_of, expand

FULL_STACK = {
    Component.primary_master,
    Component.master,
    Component.amq_broker,
    Component.orchestrator,
    Component.console,
    Component.puppetdb,
    Component.database,
}


def test_single_master_gets_full_monolithic_stack():
    components = expand(RoleMap(puppet_master_host="m1"))
    assert components_of("m1", components) == FULL_STACK


def test_expansion_always_has_every_component_key():
    components = expand(RoleMap())
    assert set(components) == set(Component)
    assert all(hosts == set() for hosts in components.values())


def test_split_install_moves_console_and_puppetdb_off_master():
    roles = RoleMap(puppet_master_host="m1", console_host="c1", puppetdb_host=("p1",))
    components = expand(roles)

    master = components_of("m1", components)
    assert Component.console not in master
    assert Component.puppetdb not in master
    # The first PuppetDB host takes the database, not the master.
    assert Component.database not in master
    assert components_of("c1", components) == {Component.console}
    assert components_of("p1", components) == {Component.puppetdb, Component.database}


def test_master_keeps_database_without_puppetdb_or_database_hosts():
    roles = RoleMap(puppet_master_host="m1", console_host="c1")
    components = expand(roles)
    assert Component.database in components_of("m1", components)
    assert Component.puppetdb in components_of("m1", components)


def test_database_host_takes_database_from_everyone():
    roles = RoleMap(puppet_master_host="m1", puppetdb_host=("p1", "p2"), database_host="d1")
    components = expand(roles)
    assert components[Component.database] == {"d1"}
    assert components[Component.puppetdb] == {"p1", "p2"}


def test_only_first_puppetdb_host_gets_database():
    roles = RoleMap(puppet_master_host="m1", puppetdb_host=("p2", "p1"))
    components = expand(roles)
    assert components[Component.database] == {"p2"}


def test_replica_mirrors_full_stack_even_in_split_install():
    roles = RoleMap(
        puppet_master_host="m1",
        console_host="c1",
        puppetdb_host=("p1",),
        database_host="d1",
        primary_master_replica="r1",
    )
    components = expand(roles)
    assert components_of("r1", components) == {
        Component.primary_master_replica,
        Component.master,
        Component.console,
        Component.puppetdb,
        Component.database,
        Component.amq_broker,
        Component.orchestrator,
    }


def test_compile_masters_get_master():
    roles = RoleMap(puppet_master_host="m1", compile_master=("cm1", "cm2"))
    components = expand(roles)
    for host in ("cm1", "cm2"):
        assert components_of(host, components) == {Component.compile_master, Component.master}


def test_host_may_gain_components_from_several_rules():
    """
    A host declared as both console host and database host gets both components.
    """
    roles = RoleMap(puppet_master_host="m1", console_host="x1", database_host="x1")
    components = expand(roles)
    assert components_of("x1", components) == {Component.console, Component.database}


def test_expansion_is_independent_of_rule_order():
    """
    Every permutation of the rules yields the same component sets.
    """
    roles = RoleMap(
        puppet_master_host="m1",
        console_host="c1",
        puppetdb_host=("p1", "p2"),
        primary_master_replica="r1",
        compile_master=("cm1", "m1"),
    )
    expected = expand(roles)
    for order in itertools.permutations(EXPANSION_RULES):
        assert expand(roles, order) == expected


def test_expansion_does_not_mutate_between_calls():
    roles = RoleMap(puppet_master_host="m1")
    first = expand(roles)
    first[Component.console].add("intruder")
    assert expand(roles)[Component.console] == {"m1"}


def test_role_map_from_mapping_coerces_multi_valued_roles():
    roles = RoleMap.from_mapping(
        {
            "puppet_master_host": "m1",
            "puppetdb_host": "p1",
            "compile_master": ["cm2", "cm1"],
            "console_host": "",
            "unknown_role": "ignored",
        }
    )
    assert roles.puppetdb_host == ("p1",)
    assert roles.compile_master == ("cm2", "cm1")
    assert roles.console_host is None

"""
infra_tune

This package inspects a Puppet Enterprise style deployment and derives tuning
settings for every infrastructure node.

We keep modules small and well separated:
core contains shared data structures, errors, and unit parsing
inventory contains topology sources such as inventory files and local probing
topology contains source merging, role expansion, and node classification
providers contains collaborator interfaces and inventory backed providers
tuning contains the minimum requirements gate, aggregation, and capacity logic
output contains Hiera YAML persistence
"""

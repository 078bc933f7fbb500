import pytest

from azautomation.exceptions import AzureCLIError
from azautomation.mesh_network import setup_mesh_network
from azautomation.models import MeshSettings

RESPONSES = [
    ("--name aks-subnet-c1", "/subnets/aks-subnet-c1"),
    ("--name aks-subnet-c2", "/subnets/aks-subnet-c2"),
    ("--name appgw-subnet", "/subnets/appgw-subnet"),
    ("aks show --resource-group rg-aks-istio-multicluster-06 --name aks-istio-c1", "MC_c1"),
    ("aks show --resource-group rg-aks-istio-multicluster-06 --name aks-istio-c2", "MC_c2"),
    ("network nsg list", "aks-agentpool-1234-nsg"),
]


def _value(args, flag):
    return args[args.index(flag) + 1]


def test_fixed_call_sequence(make_cli):
    cli, fake = make_cli(RESPONSES)
    setup_mesh_network(cli, MeshSettings())

    assert fake.verbs(4) == [
        "group create",
        "network vnet create",
        "network vnet subnet create",
        "network vnet subnet create",
        "network vnet subnet create",
        "aks create",
        "aks create",
        "aks get-credentials",
        "aks get-credentials",
        "aks show",
        "aks show",
        "network nsg list",
        "network nsg rule create",
        "network nsg rule create",
    ]


def test_subnet_ids_flow_into_cluster_creation(make_cli):
    cli, fake = make_cli(RESPONSES)
    result = setup_mesh_network(cli, MeshSettings())

    assert result.subnet_ids == {
        "aks-subnet-c1": "/subnets/aks-subnet-c1",
        "aks-subnet-c2": "/subnets/aks-subnet-c2",
        "appgw-subnet": "/subnets/appgw-subnet",
    }
    creates = [args for args in fake.commands() if args[:2] == ["aks", "create"]]
    assert _value(creates[0], "--vnet-subnet-id") == "/subnets/aks-subnet-c1"
    assert _value(creates[1], "--vnet-subnet-id") == "/subnets/aks-subnet-c2"
    assert _value(creates[0], "--kubernetes-version") == "1.32.5"
    assert "--enable-managed-identity" in creates[0]


def test_credentials_use_mesh_context_names(make_cli):
    cli, fake = make_cli(RESPONSES)
    result = setup_mesh_network(cli, MeshSettings())
    assert result.contexts == ["cluster1", "cluster2"]
    creds = [args for args in fake.commands() if args[:2] == ["aks", "get-credentials"]]
    assert [_value(args, "--context") for args in creds] == ["cluster1", "cluster2"]


def test_east_west_rules_open_port_between_subnets(make_cli):
    cli, fake = make_cli(RESPONSES)
    result = setup_mesh_network(cli, MeshSettings())

    assert result.node_resource_groups == {"aks-istio-c1": "MC_c1", "aks-istio-c2": "MC_c2"}
    assert result.nsg_name == "aks-agentpool-1234-nsg"

    nsg_list = [args for args in fake.commands() if args[:3] == ["network", "nsg", "list"]][0]
    assert _value(nsg_list, "--resource-group") == "MC_c1"

    rules = [args for args in fake.commands() if args[:4] == ["network", "nsg", "rule", "create"]]
    # Inbound to cluster 2 from subnet 1 first, then the reverse
    assert _value(rules[0], "--resource-group") == "MC_c2"
    assert _value(rules[0], "--source-address-prefixes") == "10.1.0.0/24"
    assert _value(rules[0], "--destination-address-prefixes") == "10.1.1.0/24"
    assert _value(rules[1], "--resource-group") == "MC_c1"
    assert _value(rules[1], "--source-address-prefixes") == "10.1.1.0/24"
    for rule in rules:
        assert _value(rule, "--destination-port-ranges") == "15443"
        assert _value(rule, "--nsg-name") == "aks-agentpool-1234-nsg"
        assert _value(rule, "--direction") == "Inbound"
    assert len(set(result.nsg_rules)) == 2


def test_cluster_failure_stops_the_sequence(make_cli):
    cli, fake = make_cli(RESPONSES, fail_on="aks create --resource-group rg-aks-istio-multicluster-06 --name aks-istio-c1")
    with pytest.raises(AzureCLIError):
        setup_mesh_network(cli, MeshSettings())
    assert fake.verbs(2)[-1] == "aks create"
    assert len(fake.calls) == 6

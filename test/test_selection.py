import pytest
from dr_rest_client.exceptions import EnvironmentPrerequisiteError
from dr_rest_client.models import (
    Datastore,
    Pairing,
    ReplicationServerInfo,
    StoragePolicy,
    VcServer,
    VirtualMachine,
)
from dr_rest_client.selection import (
    choose_datastore,
    choose_local_vms,
    choose_pairing,
    choose_remote_vr,
    choose_storage_policy,
    choose_vrms,
    find_pairing_by_remote_vc,
    string_to_moref,
)


def make_pairing(pairing_id, local_id, remote_id, remote_name="vc-remote"):
    return Pairing(
        pairing_id=pairing_id,
        local_vc_server=VcServer(id=local_id, name="vc-local"),
        remote_vc_server=VcServer(id=remote_id, name=remote_name),
    )


def test_choose_pairing_skips_same_site_pairings():
    pairings = [make_pairing("robo", "vc-1", "vc-1"), make_pairing("site", "vc-1", "vc-2")]

    assert choose_pairing(pairings).pairing_id == "site"


@pytest.mark.parametrize("pairings", [[], [make_pairing("robo", "vc-1", "vc-1")]])
def test_choose_pairing_without_remote_site(pairings):
    with pytest.raises(EnvironmentPrerequisiteError, match="Consider fulfilling the prerequisite"):
        choose_pairing(pairings)


def test_find_pairing_by_remote_vc():
    pairings = [
        make_pairing("a", "vc-1", "vc-2", "vc-b.example.com"),
        make_pairing("b", "vc-1", "vc-3", "vc-c.example.com"),
    ]

    assert find_pairing_by_remote_vc(pairings, "vc-c.example.com").pairing_id == "b"
    with pytest.raises(EnvironmentPrerequisiteError):
        find_pairing_by_remote_vc(pairings, "vc-d.example.com")


def test_find_pairing_by_remote_vc_prefers_first_match():
    pairings = [
        make_pairing("first", "vc-1", "vc-2", "vc-shared.example.com"),
        make_pairing("second", "vc-1", "vc-3", "vc-shared.example.com"),
    ]

    assert find_pairing_by_remote_vc(pairings, "vc-shared.example.com").pairing_id == "first"


def test_choose_local_vms_keeps_configured_order():
    vms = [VirtualMachine(id=f"vm-{i}", name=f"app-{i}") for i in range(3)]

    chosen = choose_local_vms(vms, ["app-2", "app-0"])

    assert [vm.id for vm in chosen] == ["vm-2", "vm-0"]
    with pytest.raises(EnvironmentPrerequisiteError, match=r"\[app-9\] does not exist"):
        choose_local_vms(vms, ["app-0", "app-9"])


def test_first_entry_choices():
    servers = [ReplicationServerInfo(id="vrs-1"), ReplicationServerInfo(id="vrs-2")]

    assert choose_remote_vr(servers).id == "vrs-1"
    with pytest.raises(EnvironmentPrerequisiteError):
        choose_remote_vr([])
    with pytest.raises(EnvironmentPrerequisiteError):
        choose_vrms([])


def test_storage_policy_and_datastore_by_name():
    policies = [
        StoragePolicy(storage_policy_id="p-1", storage_policy_name="Silver"),
        StoragePolicy(storage_policy_id="p-2", storage_policy_name="Gold"),
    ]
    datastores = [Datastore(id="ds-1", name="remote-ds-1")]

    assert choose_storage_policy(policies, "Gold").storage_policy_id == "p-2"
    assert choose_datastore(datastores, "remote-ds-1").id == "ds-1"
    with pytest.raises(EnvironmentPrerequisiteError):
        choose_storage_policy(policies, "Bronze")
    with pytest.raises(EnvironmentPrerequisiteError):
        choose_datastore(datastores, "remote-ds-9")


def test_string_to_moref():
    assert string_to_moref("ProtectionGroup:group-1:guid") == ("ProtectionGroup", "group-1", "guid")
    with pytest.raises(ValueError, match="not a valid ManagedObjectReference"):
        string_to_moref("group-1")

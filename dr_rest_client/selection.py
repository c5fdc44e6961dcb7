from typing import List, Tuple

from dr_rest_client.exceptions import EnvironmentPrerequisiteError
from dr_rest_client.models import (
    Datastore,
    Pairing,
    ReplicationServerInfo,
    StoragePolicy,
    VirtualMachine,
    VrmsInfo,
)

MOREF_PARTS_SEPARATOR = ":"


def choose_pairing(pairings: List[Pairing]) -> Pairing:
    """Pick the first pairing that spans two different vCenters"""
    for pairing in pairings:
        if pairing.local_vc_server.id != pairing.remote_vc_server.id:
            return pairing
    raise EnvironmentPrerequisiteError("No pairing with a remote VC is found.")


def find_pairing_by_remote_vc(pairings: List[Pairing], remote_vc_name: str) -> Pairing:
    """Return the first pairing whose remote vCenter has the given name.

    Names are not unique across pairings; when several match, later ones are
    ignored.
    """
    for pairing in pairings:
        if pairing.remote_vc_server.name == remote_vc_name:
            return pairing
    raise EnvironmentPrerequisiteError(
        f"No pairing with remote VC [{remote_vc_name}] is found."
    )


def choose_local_vms(vms: List[VirtualMachine], names: List[str]) -> List[VirtualMachine]:
    by_name = {vm.name: vm for vm in vms}
    chosen = []
    for name in names:
        if name not in by_name:
            raise EnvironmentPrerequisiteError(
                f"VM with name [{name}] does not exist on the local site."
            )
        chosen.append(by_name[name])
    return chosen


def choose_vrms(vrms: List[VrmsInfo]) -> VrmsInfo:
    if not vrms:
        raise EnvironmentPrerequisiteError(
            "No vSphere Replication Management Server is found in the pairing."
        )
    return vrms[0]


def choose_remote_vr(servers: List[ReplicationServerInfo]) -> ReplicationServerInfo:
    if not servers:
        raise EnvironmentPrerequisiteError("No vSphere Replication Server on the remote site.")
    return servers[0]


def choose_storage_policy(policies: List[StoragePolicy], name: str) -> StoragePolicy:
    for policy in policies:
        if policy.storage_policy_name == name:
            return policy
    raise EnvironmentPrerequisiteError(
        f"Storage policy with name [{name}] does not exist on the remote site."
    )


def choose_datastore(datastores: List[Datastore], name: str) -> Datastore:
    for datastore in datastores:
        if datastore.name == name:
            return datastore
    raise EnvironmentPrerequisiteError(
        f"Datastore with name [{name}] does not exist on the remote site."
    )


def string_to_moref(value: str) -> Tuple[str, str, str]:
    """Split a managed object reference such as 'ProtectionGroup:group-1:<server guid>'"""
    parts = value.split(MOREF_PARTS_SEPARATOR)
    if len(parts) != 3:
        raise ValueError(f"{value} is not a valid ManagedObjectReference.")
    return parts[0], parts[1], parts[2]

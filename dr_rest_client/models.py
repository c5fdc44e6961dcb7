from enum import Enum
from typing import Any, ClassVar, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ReplicationType(str, Enum):
    HBR = "HBR"
    VVOL = "VVOL"
    ABR = "ABR"


class Task(BaseModel):
    id: str
    status: TaskStatus
    description: Optional[str] = None
    entity: Optional[Any] = None
    entity_name: Optional[str] = None
    result: Optional[Any] = None
    progress: Optional[int] = None


class TaskPollingConfig(BaseModel):
    retry_interval_ms: int = Field(default=200, gt=0)
    timeout: Optional[float] = Field(default=None, gt=0)  # seconds, None waits forever


class SessionIdData(BaseModel):
    session_id: str


class SessionInfo(BaseModel):
    username: str
    created_time: Optional[str] = None
    last_accessed_time: Optional[str] = None


class VcServer(BaseModel):
    id: str
    name: str
    url: Optional[str] = None


class Pairing(BaseModel):
    pairing_id: str
    local_vc_server: VcServer
    remote_vc_server: VcServer


class VrmsInfo(BaseModel):
    id: str
    name: Optional[str] = None
    version: Optional[str] = None


class ReplicationServerInfo(BaseModel):
    id: str
    name: Optional[str] = None
    address: Optional[str] = None


class VmDisk(BaseModel):
    # Passed back verbatim in replication specs, so unknown fields are kept.
    model_config = ConfigDict(extra="allow")

    key: Optional[int] = None
    is_vm_home: bool = False
    capacity: Optional[int] = None


class VirtualMachine(BaseModel):
    id: str
    name: str
    disks: List[VmDisk] = []


class VmCapabilities(BaseModel):
    auto_replicate_new_disks_supported: bool = False
    min_rpo_mins: int = 5
    lwd_encryption_supported: bool = False
    mpit_supported: bool = False
    network_compression_supported: bool = False
    quiescing_supported: bool = False


class StoragePolicy(BaseModel):
    storage_policy_id: str
    storage_policy_name: str


class Datastore(BaseModel):
    id: str
    name: str


class ConfigureReplicationVmDisk(BaseModel):
    vm_disk: VmDisk
    enabled_for_replication: bool = True
    use_seeds: bool = False
    destination_datastore_id: Optional[str] = None
    destination_path: Optional[str] = None
    destination_storage_policy_id: Optional[str] = None
    destination_disk_format: str = "SAME_AS_SOURCE"


class ConfigureReplicationSpec(BaseModel):
    vm_id: str
    target_vc_id: str
    target_replication_server_id: Optional[str] = None
    rpo: int
    auto_replicate_new_disks: bool = False
    lwd_encryption_enabled: bool = False
    mpit_enabled: bool = False
    mpit_instances: int = 0
    mpit_days: int = 0
    network_compression_enabled: bool = False
    quiesce_enabled: bool = False
    vm_data_sets_replication_enabled: bool = False
    disks: List[ConfigureReplicationVmDisk] = []


class HbrProtectionGroupSpec(BaseModel):
    vms: List[str]


class ProtectionGroupCreateSpec(BaseModel):
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    replication_type: ReplicationType
    protected_vc_guid: str
    hbr_spec: Optional[HbrProtectionGroupSpec] = None


class TestNetworkMappingsSpec(BaseModel):
    __test__: ClassVar[bool] = False  # not a pytest test class

    test_network: str
    target_network: str


class RecoveryPlanCreateSpec(BaseModel):
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    protected_vc_guid: str
    protection_groups: List[str] = []
    test_network_mappings: List[TestNetworkMappingsSpec] = []


class TestPlanSpec(BaseModel):
    __test__: ClassVar[bool] = False

    sync_data: bool = False


class CleanupTestPlanSpec(BaseModel):
    forced: bool = False


class RecoverPlanSpec(BaseModel):
    sync_data: bool = False
    planned_failover: bool = False
    migrate_eligible_vms: bool = False
    skip_protection_site_operations: bool = False


class ReprotectPlanSpec(BaseModel):
    forced: bool = False

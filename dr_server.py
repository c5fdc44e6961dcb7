import random
import uuid
from typing import Any, Dict, List, Optional

from aiohttp import BasicAuth, hdrs, web
from loguru import logger

SESSION_HEADER = "x-dr-session"

LOCAL_VC_ID = "11111111-1111-1111-1111-111111111111"
REMOTE_VC_ID = "22222222-2222-2222-2222-222222222222"
PROTECTED_VC_GUID = LOCAL_VC_ID


class DrRestServer:
    """In-memory stand-in for the DR REST gateway.

    Every task it creates answers QUEUED on the first status request, RUNNING
    until polls_to_complete requests were made, then SUCCESS, or ERROR with
    probability error_rate.
    """

    def __init__(
        self,
        base_path: str = "/api/rest/vr/v2",
        username: str = "administrator@vsphere.local",
        password: str = "secret",
        remote_username: str = "administrator@vsphere.local",
        remote_password: str = "remote-secret",
        polls_to_complete: int = 3,
        error_rate: float = 0.0,
    ):
        self.base_path = base_path.rstrip("/")
        self.username = username
        self.password = password
        self.remote_username = remote_username
        self.remote_password = remote_password
        self.polls_to_complete = polls_to_complete
        self.error_rate = error_rate
        self.logger = logger

        self.sessions: Dict[str, str] = {}
        self.remote_sessions: List[str] = []
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.requests: List[str] = []
        self.pairings = [
            {
                "pairing_id": "robo-pairing",
                "local_vc_server": {"id": LOCAL_VC_ID, "name": "vc-local.example.com"},
                "remote_vc_server": {"id": LOCAL_VC_ID, "name": "vc-local.example.com"},
            },
            {
                "pairing_id": "site-pairing",
                "local_vc_server": {"id": LOCAL_VC_ID, "name": "vc-local.example.com"},
                "remote_vc_server": {"id": REMOTE_VC_ID, "name": "vc-remote.example.com"},
            },
        ]
        self.vms = [
            {
                "id": f"vm-{index}",
                "name": f"app-vm-{index}",
                "disks": [
                    {"key": 2000, "is_vm_home": True, "capacity": 16 * 2**30},
                    {"key": 2001, "is_vm_home": False, "capacity": 64 * 2**30},
                ],
            }
            for index in range(1, 4)
        ]
        self.storage_policies = [
            {"storage_policy_id": "policy-default", "storage_policy_name": "vSAN Default Storage Policy"},
            {"storage_policy_id": "policy-gold", "storage_policy_name": "Gold"},
        ]
        self.datastores = [
            {"id": "datastore-10", "name": "remote-ds-1"},
            {"id": "datastore-11", "name": "remote-ds-2"},
        ]
        self.replication_specs: List[Dict[str, Any]] = []
        self.protection_groups: List[Dict[str, Any]] = []
        self.recovery_plans: List[Dict[str, Any]] = []
        self.plan_actions: List[Dict[str, Any]] = []

        self.app = web.Application(middlewares=[self.record_and_authorize])
        self.runner: Optional[web.AppRunner] = None
        self._add_routes()

    def _add_routes(self):
        base = self.base_path
        pairing = base + "/pairings/{pairing_id}"
        vcenter = pairing + "/vcenters/{vcenter_id}"
        plan = pairing + "/recovery-management/plans/{plan_id}"
        self.app.router.add_post(base + "/session", self.handle_login)
        self.app.router.add_get(base + "/session", self.handle_current_session)
        self.app.router.add_delete(base + "/session", self.handle_logout)
        self.app.router.add_get(base + "/pairings", self.handle_pairings)
        self.app.router.add_post(pairing + "/remote-session", self.handle_remote_login)
        self.app.router.add_get(pairing + "/vr-management-servers", self.handle_vrms)
        self.app.router.add_get(
            pairing + "/vr-management-servers/{vrms_id}/replication-servers", self.handle_vr_servers
        )
        self.app.router.add_get(base + "/replication-servers", self.handle_vr_servers)
        self.app.router.add_get(vcenter + "/vms", self.handle_vms)
        self.app.router.add_get(vcenter + "/vms/{vm_id}/capability", self.handle_vm_capability)
        self.app.router.add_get(vcenter + "/storage-policies", self.handle_storage_policies)
        self.app.router.add_get(vcenter + "/vr-capable-target-datastores", self.handle_datastores)
        self.app.router.add_post(pairing + "/replications", self.handle_configure_replication)
        self.app.router.add_post(pairing + "/protection-management/groups", self.handle_create_group)
        self.app.router.add_post(pairing + "/recovery-management/plans", self.handle_create_plan)
        self.app.router.add_post(plan + "/actions/{action}", self.handle_plan_action)
        self.app.router.add_get(base + "/tasks/{task_id}", self.handle_task)

    @web.middleware
    async def record_and_authorize(self, request: web.Request, handler):
        self.requests.append(f"{request.method} {request.path}")
        is_login = request.method == hdrs.METH_POST and request.path == self.base_path + "/session"
        if not is_login and request.headers.get(SESSION_HEADER) not in self.sessions:
            return web.json_response({"error": "Not authenticated"}, status=401)
        return await handler(request)

    def _credentials_match(self, request: web.Request, username: str, password: str) -> bool:
        header = request.headers.get(hdrs.AUTHORIZATION)
        if header is None:
            return False
        try:
            auth = BasicAuth.decode(header)
        except ValueError:
            return False
        return auth.login == username and auth.password == password

    def _new_task(self, description: str, entity_name: str, result: Any = None) -> Dict[str, Any]:
        task_id = f"HmsTask-{uuid.uuid4()}"
        task = {
            "id": task_id,
            "status": "QUEUED",
            "description": description,
            "entity": {"id": entity_name, "type": "Task"},
            "entity_name": entity_name,
            "result": None,
            "progress": 0,
        }
        self.tasks[task_id] = {"task": task, "polls": 0, "result": result}
        return task

    def _pairing_or_404(self, request: web.Request) -> Dict[str, Any]:
        pairing_id = request.match_info["pairing_id"]
        for pairing in self.pairings:
            if pairing["pairing_id"] == pairing_id:
                return pairing
        raise web.HTTPNotFound(
            text=f'{{"error": "Pairing {pairing_id} not found"}}', content_type="application/json"
        )

    async def handle_login(self, request: web.Request):
        if not self._credentials_match(request, self.username, self.password):
            self.logger.info("Rejecting login with wrong credentials")
            return web.json_response({"error": "Invalid credentials"}, status=401)
        session_id = str(uuid.uuid4())
        self.sessions[session_id] = self.username
        return web.json_response({"session_id": session_id})

    async def handle_current_session(self, request: web.Request):
        username = self.sessions[request.headers[SESSION_HEADER]]
        return web.json_response({"username": username})

    async def handle_logout(self, request: web.Request):
        self.sessions.pop(request.headers[SESSION_HEADER], None)
        return web.Response(status=204)

    async def handle_pairings(self, request: web.Request):
        return web.json_response({"list": self.pairings})

    async def handle_remote_login(self, request: web.Request):
        pairing = self._pairing_or_404(request)
        if not self._credentials_match(request, self.remote_username, self.remote_password):
            return web.json_response({"error": "Invalid remote credentials"}, status=401)
        self.remote_sessions.append(pairing["pairing_id"])
        return web.Response(status=204)

    async def handle_vrms(self, request: web.Request):
        self._pairing_or_404(request)
        return web.json_response({"list": [{"id": "vrms-remote", "name": "vrms.remote.example.com"}]})

    async def handle_vr_servers(self, request: web.Request):
        return web.json_response({"list": [{"id": "vrs-1", "name": "vrs-1.remote.example.com"}]})

    async def handle_vms(self, request: web.Request):
        self._pairing_or_404(request)
        return web.json_response({"list": self.vms})

    async def handle_vm_capability(self, request: web.Request):
        return web.json_response(
            {
                "auto_replicate_new_disks_supported": True,
                "min_rpo_mins": 5,
                "lwd_encryption_supported": True,
                "mpit_supported": True,
                "network_compression_supported": True,
                "quiescing_supported": False,
            }
        )

    async def handle_storage_policies(self, request: web.Request):
        return web.json_response({"list": self.storage_policies})

    async def handle_datastores(self, request: web.Request):
        return web.json_response({"list": self.datastores})

    async def handle_configure_replication(self, request: web.Request):
        self._pairing_or_404(request)
        specs = await request.json()
        self.replication_specs.extend(specs)
        tasks = [
            self._new_task("Configure replication", spec["vm_id"]) for spec in specs
        ]
        return web.json_response({"list": tasks})

    async def handle_create_group(self, request: web.Request):
        self._pairing_or_404(request)
        spec = await request.json()
        self.protection_groups.append(spec)
        group_ref = f"ProtectionGroup:group-{len(self.protection_groups)}:{PROTECTED_VC_GUID}"
        return web.json_response(self._new_task("Create protection group", spec["name"], group_ref))

    async def handle_create_plan(self, request: web.Request):
        self._pairing_or_404(request)
        spec = await request.json()
        self.recovery_plans.append(spec)
        plan_ref = f"RecoveryPlan:plan-{len(self.recovery_plans)}:{PROTECTED_VC_GUID}"
        return web.json_response(self._new_task("Create recovery plan", spec["name"], plan_ref))

    async def handle_plan_action(self, request: web.Request):
        self._pairing_or_404(request)
        body = await request.json() if request.can_read_body else None
        action = request.match_info["action"]
        plan_id = request.match_info["plan_id"]
        self.plan_actions.append({"plan_id": plan_id, "action": action, "spec": body})
        return web.json_response(self._new_task(f"Recovery plan {action}", plan_id))

    async def handle_task(self, request: web.Request):
        task_id = request.match_info["task_id"]
        entry = self.tasks.get(task_id)
        if entry is None:
            return web.json_response({"error": f"Task {task_id} not found"}, status=404)

        task = entry["task"]
        if task["status"] in ("SUCCESS", "ERROR"):
            return web.json_response(task)

        entry["polls"] += 1
        if entry["polls"] >= self.polls_to_complete:
            if random.random() < self.error_rate:
                self.logger.info(f"Task {task_id} finished with error")
                task["status"] = "ERROR"
            else:
                self.logger.info(f"Task {task_id} finished successfully")
                task["status"] = "SUCCESS"
                task["result"] = entry["result"]
            task["progress"] = 100
        elif entry["polls"] > 1:
            task["status"] = "RUNNING"
            task["progress"] = int(100 * entry["polls"] / self.polls_to_complete)
        return web.json_response(task)

    async def start(self, port: int = 8080):
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, "localhost", port)
        await site.start()
        self.logger.info(f"DR REST gateway mock started on port {port}")
        return site

    async def stop(self):
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None

from typing import List

from loguru import logger

from dr_rest_client.api_client import DrApiClient
from dr_rest_client.exceptions import ApiError, ExamplesExecutionError
from dr_rest_client.models import Pairing, ReplicationServerInfo, VrmsInfo


class PairingLibrary:
    def __init__(self, api_client: DrApiClient):
        self.api_client = api_client
        self.logger = logger

    async def get_all_pairings(self) -> List[Pairing]:
        try:
            data = await self.api_client.request("GET", "/pairings")
        except ApiError as e:
            raise ExamplesExecutionError("PairingApi.get_pairings", e) from e

        self.logger.info("Get a list of all existing pairings completed.")
        return [Pairing.model_validate(item) for item in data["list"]]

    async def remote_login(self, pairing_id: str, username: str, password: str) -> None:
        """Open a session on the remote site of the pairing with its own credentials"""
        self.api_client.set_remote_login_basic_auth(username, password)
        try:
            await self.api_client.request(
                "POST",
                f"/pairings/{pairing_id}/remote-session",
                auth=self.api_client.remote_login_basic_auth,
            )
        except ApiError as e:
            raise ExamplesExecutionError("PairingApi.create_remote_session", e) from e

        self.logger.info("Remote session successfully created.")

    async def get_all_vrms_details(self, pairing_id: str) -> List[VrmsInfo]:
        try:
            data = await self.api_client.request(
                "GET", f"/pairings/{pairing_id}/vr-management-servers"
            )
        except ApiError as e:
            raise ExamplesExecutionError("PairingApi.get_all_vr_details_in_pairing", e) from e

        self.logger.info(
            "Get a list of all paired vSphere Replication Management Servers completed."
        )
        return [VrmsInfo.model_validate(item) for item in data["list"]]

    async def get_all_vrs_details(
        self, pairing_id: str, vrms_id: str
    ) -> List[ReplicationServerInfo]:
        try:
            data = await self.api_client.request(
                "GET",
                f"/pairings/{pairing_id}/vr-management-servers/{vrms_id}/replication-servers",
            )
        except ApiError as e:
            raise ExamplesExecutionError("PairingApi.get_all_vr_servers_in_pairing", e) from e

        self.logger.info("Get a list of all registered vSphere Replication Servers completed.")
        return [ReplicationServerInfo.model_validate(item) for item in data["list"]]


class ServerLibrary:
    def __init__(self, api_client: DrApiClient):
        self.api_client = api_client
        self.logger = logger

    async def get_all_vr_servers(self) -> List[ReplicationServerInfo]:
        try:
            data = await self.api_client.request("GET", "/replication-servers")
        except ApiError as e:
            raise ExamplesExecutionError("ServerApi.get_all_vr_servers", e) from e

        self.logger.info("Get all registered replication servers completed.")
        return [ReplicationServerInfo.model_validate(item) for item in data["list"]]

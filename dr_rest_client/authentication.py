from loguru import logger

from dr_rest_client.api_client import SESSION_HEADER, DrApiClient
from dr_rest_client.exceptions import ApiError, ExamplesExecutionError
from dr_rest_client.models import SessionIdData, SessionInfo


class AuthenticationLibrary:
    def __init__(self, api_client: DrApiClient):
        self.api_client = api_client
        self.logger = logger

    async def login(self, username: str, password: str) -> SessionIdData:
        """Create a session with basic auth and attach its id to every later request"""
        self.api_client.set_basic_auth(username, password)
        try:
            data = await self.api_client.request(
                "POST", "/session", auth=self.api_client.basic_auth
            )
        except ApiError as e:
            raise ExamplesExecutionError("AuthenticationApi.login", e) from e

        session = SessionIdData.model_validate(data)
        self.api_client.add_default_header(SESSION_HEADER, session.session_id)
        self.logger.info(f"New session with ID [{session.session_id}] is created.")
        return session

    async def get_current_session(self) -> SessionInfo:
        try:
            data = await self.api_client.request("GET", "/session")
        except ApiError as e:
            raise ExamplesExecutionError("AuthenticationApi.get_current_session", e) from e

        info = SessionInfo.model_validate(data)
        self.logger.info(f"Current session username is [{info.username}].")
        return info

    async def logout(self) -> None:
        try:
            await self.api_client.request("DELETE", "/session")
        except ApiError as e:
            raise ExamplesExecutionError("AuthenticationApi.logout", e) from e
        finally:
            self.api_client.remove_default_header(SESSION_HEADER)

        self.logger.info("Session logout is successful.")

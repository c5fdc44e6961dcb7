import base64
import binascii
import os
import re
from typing import Dict, List, Optional

from dotenv import dotenv_values
from loguru import logger

from dr_rest_client.exceptions import ConfigNotInitializedError, ConfigNotValidError
from dr_rest_client.models import TaskPollingConfig

CONFIG_FILE = "dr-rest-api-examples.properties"
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class Keys:
    """Property names understood by the examples"""

    REST_API_BASE_PATH = "rest-api-base-path"
    VERIFY_SSL = "verify-ssl"
    SSO_USERNAME = "sso-username"
    SSO_PASSWORD = "sso-password"
    REMOTE_SSO_USERNAME = "remote-sso-username"
    REMOTE_SSO_PASSWORD = "remote-sso-password"
    PASSWORD_ENCODING = "password-encoding"
    TASK_COMPLETION_RETRY_INTERVAL = "task-completion-retry-interval"
    TASK_COMPLETION_TIMEOUT = "task-completion-timeout"

    # vSphere Replication
    LOCAL_VMS = "local-vms"
    REMOTE_STORAGE_POLICY = "remote-storage-policy"
    REMOTE_DATASTORE = "remote-datastore"

    # Site Recovery Manager
    REMOTE_VC_NAME = "remote-vc-name"
    PROTECTED_VC_GUID = "protected-vc-guid"
    REPLICATION_TYPE = "replication-type"
    VM = "vm"
    GROUP_NAME = "group.name"
    GROUP_DESCRIPTION = "group.description"
    GROUP_LOCATION = "group.location"
    PLAN_NAME = "plan.name"
    PLAN_DESCRIPTION = "plan.description"
    PLAN_LOCATION = "plan.location"
    PLAN_TARGET_NETWORK = "plan.target-network"
    PLAN_TEST_NETWORK = "plan.test-network"
    PLAN_ID = "plan.id"
    PLAN_ACTION = "plan.action"
    PLAN_SYNC_DATA = "plan.sync-data"
    PLAN_FORCED = "plan.forced"
    PLAN_PLANNED_FAILOVER = "plan.planned-failover"
    PLAN_MIGRATE_ELIGIBLE_VMS = "plan.migrate-eligible-vms"
    PLAN_SKIP_PROTECTION_SITE_OPERATIONS = "plan.skip-protection-site-operations"


class ExamplesConfig:
    """Flat key/value settings shared by the examples.

    Values are read lazily through typed getters, each of which fails with
    ConfigNotValidError on an empty or malformed value.
    """

    def __init__(self, properties: Dict[str, Optional[str]]):
        self.properties = dict(properties)

    @classmethod
    def load(cls, path: str = CONFIG_FILE) -> "ExamplesConfig":
        if not os.path.isfile(path):
            raise ConfigNotInitializedError(f"Resource file [{path}] can not be found.")

        try:
            properties = dotenv_values(path, interpolate=False)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigNotInitializedError(
                f"Configuration initialization failed while reading [{path}]: {e}"
            ) from e

        logger.debug(f"Loaded {len(properties)} properties from {path}")
        return cls(properties)

    def get_optional(self, name: str) -> Optional[str]:
        value = self.properties.get(name)
        if value is None or value.strip() == "":
            return None
        return value.strip()

    def get_property_not_empty(self, name: str) -> str:
        value = self.get_optional(name)
        if value is None:
            raise ConfigNotValidError(
                f"Configuration value with property name [{name}] should not be null or an empty string."
            )
        return value

    def get_boolean(self, name: str) -> bool:
        value = self.get_property_not_empty(name)
        if value.lower() == "true":
            return True
        if value.lower() == "false":
            return False
        raise ConfigNotValidError(
            f"Configuration value [{value}] with property name [{name}] is not a boolean."
        )

    def get_boolean_or_default(self, name: str, default: bool) -> bool:
        if self.get_optional(name) is None:
            return default
        return self.get_boolean(name)

    def _parse_integer(self, name: str, bits: int, kind: str) -> int:
        value = self.get_property_not_empty(name)
        # Plain decimal digits only; int() would also take "1_000"
        if INTEGER_PATTERN.fullmatch(value) is None:
            raise ConfigNotValidError(
                f"Configuration value [{value}] with property name [{name}] is not {kind}."
            )
        number = int(value)
        if not -(2 ** (bits - 1)) <= number < 2 ** (bits - 1):
            raise ConfigNotValidError(
                f"Configuration value [{value}] with property name [{name}] is not {kind}."
            )
        return number

    def get_int(self, name: str) -> int:
        """32-bit signed integer"""
        return self._parse_integer(name, 32, "an integer")

    def get_positive_int(self, name: str) -> int:
        value = self.get_int(name)
        if value <= 0:
            raise ConfigNotValidError(
                f"Configuration value [{value}] with property name [{name}] is not a positive integer."
            )
        return value

    def get_positive_or_zero_int(self, name: str) -> int:
        value = self.get_int(name)
        if value < 0:
            raise ConfigNotValidError(
                f"Configuration value [{value}] with property name [{name}]"
                " is not a positive integer or a zero."
            )
        return value

    def get_long(self, name: str) -> int:
        """64-bit signed integer"""
        return self._parse_integer(name, 64, "a valid long")

    def get_password(self, name: str) -> str:
        """Password property, Base64-decoded when password-encoding=base64"""
        value = self.get_property_not_empty(name)
        encoding = (self.get_optional(Keys.PASSWORD_ENCODING) or "plain").lower()
        if encoding == "plain":
            return value
        if encoding != "base64":
            raise ConfigNotValidError(
                f"Configuration value [{encoding}] with property name"
                f" [{Keys.PASSWORD_ENCODING}] is not one of plain, base64."
            )
        try:
            return base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ConfigNotValidError(
                f"Configuration value with property name [{name}] is not valid Base64."
            ) from None

    def get_list(self, name: str) -> List[str]:
        items = [item.strip() for item in self.get_property_not_empty(name).split(",")]
        if not all(items):
            raise ConfigNotValidError(
                f"Configuration value with property name [{name}] contains an empty list item."
            )
        return items

    def polling_config(self) -> TaskPollingConfig:
        timeout = None
        if self.get_optional(Keys.TASK_COMPLETION_TIMEOUT) is not None:
            timeout = self.get_positive_int(Keys.TASK_COMPLETION_TIMEOUT)

        return TaskPollingConfig(
            retry_interval_ms=self.get_positive_int(Keys.TASK_COMPLETION_RETRY_INTERVAL),
            timeout=timeout,
        )

import asyncio
import os

from loguru import logger

from dr_rest_client.config import CONFIG_FILE, ExamplesConfig
from dr_rest_client.workflows import DrExamples, create_api_client

CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), CONFIG_FILE)


async def main():
    # The action comes from plan.action: test, cleanup, cancel, recover or reprotect
    config = ExamplesConfig.load(CONFIG_PATH)

    async with create_api_client(config) as client:
        try:
            task = await DrExamples(client, config).run_recovery_action()
        except TimeoutError:
            logger.error("Recovery plan action did not finish within task-completion-timeout")
            raise

    logger.info(f"Final task: {task}")


if __name__ == "__main__":
    asyncio.run(main())

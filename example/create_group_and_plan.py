import asyncio
import os

from loguru import logger

from dr_rest_client.config import CONFIG_FILE, ExamplesConfig
from dr_rest_client.workflows import DrExamples, create_api_client

CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), CONFIG_FILE)


async def main():
    config = ExamplesConfig.load(CONFIG_PATH)

    async with create_api_client(config) as client:
        group_task, plan_task = await DrExamples(client, config).run_create_group_and_plan()

    logger.info(f"Protection group: {group_task.status.value}, result {group_task.result}")
    if plan_task is not None:
        logger.info(f"Recovery plan: {plan_task.status.value}, result {plan_task.result}")


if __name__ == "__main__":
    asyncio.run(main())

import asyncio

from dr_rest_client.config import ExamplesConfig, Keys
from dr_rest_client.models import Task
from dr_rest_client.workflows import DrExamples, create_api_client
from dr_server import PROTECTED_VC_GUID, DrRestServer


async def status_changed(task: Task):
    print(f"Task {task.id} is now {task.status.value} ({task.progress}%)")


async def main():
    PORT = 8000
    server = DrRestServer(polls_to_complete=4, error_rate=0.1)
    await server.start(port=PORT)
    print(f"Mock DR REST gateway started on http://localhost:{PORT}")

    config = ExamplesConfig(
        {
            Keys.REST_API_BASE_PATH: f"http://localhost:{PORT}{server.base_path}",
            Keys.SSO_USERNAME: server.username,
            Keys.SSO_PASSWORD: server.password,
            Keys.REMOTE_SSO_USERNAME: server.remote_username,
            Keys.REMOTE_SSO_PASSWORD: server.remote_password,
            Keys.TASK_COMPLETION_RETRY_INTERVAL: "500",
            Keys.TASK_COMPLETION_TIMEOUT: "60",
            Keys.LOCAL_VMS: "app-vm-1,app-vm-2",
            Keys.REMOTE_STORAGE_POLICY: "Gold",
            Keys.REMOTE_DATASTORE: "remote-ds-1",
            Keys.REMOTE_VC_NAME: "vc-remote.example.com",
            Keys.PROTECTED_VC_GUID: PROTECTED_VC_GUID,
            Keys.REPLICATION_TYPE: "HBR",
            Keys.VM: "vm-3",
            Keys.GROUP_NAME: "demo-group",
        }
    )

    try:
        async with create_api_client(config) as client:
            examples = DrExamples(client, config)
            await examples.run_authentication_scenario()

            tasks = await examples.run_configure_replication_scenario()
            for task in tasks:
                print(f"Final status for {task.entity_name}: {task.status.value}")

            async with examples.logged_in():
                group_task = await examples.protection.create_group(
                    "site-pairing", examples.group_spec()
                )
                final = await examples.tasks.wait_for_task_completion(
                    group_task.id, on_status_change=status_changed
                )
                print(f"Protection group task: {final.status.value}, result {final.result}")
    except TimeoutError as e:
        print(f"Polling timed out: {e}")
    except Exception as e:
        print(f"Error occurred: {e}")
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(main())

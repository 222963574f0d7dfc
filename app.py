import logging

import modal

from image import LAUNCH_COMMAND, runner_image

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("runner-provisioner")

# Constants
TIMEOUT_SECONDS = 3600

app = modal.App("runner-provisioner")

# Forwarded untouched to start.sh; the provisioner never reads it
runner_secret = modal.Secret.from_name("runner-secret")


@app.local_entrypoint()
def main(timeout: int = TIMEOUT_SECONDS, wait: bool = False):
    """Start one sandbox that drops to the runner user and execs start.sh."""
    logger.info("Spawning runner sandbox...")

    try:
        sandbox = modal.Sandbox.create(
            *LAUNCH_COMMAND,
            image=runner_image,
            app=app,
            timeout=timeout,
            secrets=[runner_secret],
        )
    except Exception as e:
        logger.error(f"Failed to create runner sandbox: {e}")
        raise

    logger.info(f"Runner sandbox {sandbox.object_id} started")

    if wait:
        sandbox.wait()
        for line in sandbox.stderr:
            logger.info(line.rstrip())
        logger.info(f"Runner sandbox exited with code {sandbox.returncode}")

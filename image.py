import modal

from runner_provisioner.config import RUNNER_CHECKSUM, RUNNER_USER, RUNNER_VERSION

# Where the provisioner expects the start script at build time
START_SCRIPT_SOURCE = "/opt/runner-provisioner/start.sh"

# Run by the sandbox at container start
LAUNCH_COMMAND = ("python", "-m", "runner_provisioner", "launch")

# Canonical runner image definition
# The provisioner itself installs OS packages, fetches and verifies the
# runner archive and hands the tree to the runner user. Only the launch
# phase (privilege drop + exec of start.sh) runs at container start, as
# the sandbox command.
runner_image = (
    modal.Image.from_registry("ubuntu:22.04", add_python="3.11")
    .pip_install("httpx")
    .env({
        "PYTHONPATH": "/opt/runner-provisioner",
        "RUNNER_VERSION": RUNNER_VERSION,
        "RUNNER_CHECKSUM": RUNNER_CHECKSUM,
        "RUNNER_USER": RUNNER_USER,
        "RUNNER_START_SCRIPT": START_SCRIPT_SOURCE,
    })
    .add_local_file("start.sh", START_SCRIPT_SOURCE, copy=True)
    .add_local_dir("runner_provisioner", "/opt/runner-provisioner/runner_provisioner", copy=True)
    .run_commands("python -m runner_provisioner build")
)

"""Remote Docker host driver (OpenSSH transport)."""

import re
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from unideploy.models.container import Platform
from unideploy.services.drivers.base import ContainerDriver
from unideploy.services.errors import BackendFailure
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="SSH")

# ssh exits with 255 when the connection itself failed
SSH_TRANSPORT_ERROR = 255


@dataclass
class SSHTarget:
    """Where and as whom to run remote commands."""
    host: str
    username: str = "ubuntu"
    private_key_path: Optional[str] = None


@dataclass
class CommandResult:
    """Outcome of one remote command."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class RemoteHostDriver(ContainerDriver):
    """Runs commands on a remote host through the local `ssh` client."""

    def __init__(self, connect_timeout: int = 10, command_timeout: int = 120, ssh_binary: str = "ssh"):
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.ssh_binary = ssh_binary

    @property
    def platform(self) -> Platform:
        return Platform.EC2_DOCKER

    def version(self) -> Optional[str]:
        # `ssh -V` prints its version on stderr
        try:
            result = subprocess.run(
                [self.ssh_binary, "-V"],
                capture_output=True,
                text=True,
                timeout=10
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise BackendFailure(f"SSH client unavailable: {e}", Platform.EC2_DOCKER.value)
        output = (result.stderr or result.stdout).strip()
        match = re.search(r"OpenSSH_[\w.]+", output)
        return match.group(0) if match else (output or None)

    def build_command(self, target: SSHTarget, command: str) -> List[str]:
        args = [
            self.ssh_binary,
            "-o", "BatchMode=yes",
            "-o", "StrictHostKeyChecking=accept-new",
            "-o", f"ConnectTimeout={self.connect_timeout}",
        ]
        if target.private_key_path:
            args += ["-i", target.private_key_path]
        args += [f"{target.username}@{target.host}", command]
        return args

    def execute(self, target: SSHTarget, command: str, timeout: Optional[int] = None) -> CommandResult:
        """
        Run a shell command on the remote host.

        A non-zero exit code of the remote command is returned, not raised.

        Raises:
            BackendFailure: the host could not be reached or the command timed out
        """
        timeout = timeout or self.command_timeout
        logger.debug(f"{target.username}@{target.host}: {command}")
        try:
            result = subprocess.run(
                self.build_command(target, command),
                capture_output=True,
                text=True,
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            raise BackendFailure(
                f"Command timed out after {timeout}s on {target.host}: {command}",
                Platform.EC2_DOCKER.value,
            )
        except FileNotFoundError:
            raise BackendFailure(f"SSH client '{self.ssh_binary}' not found", Platform.EC2_DOCKER.value)

        if result.returncode == SSH_TRANSPORT_ERROR:
            raise BackendFailure(
                f"Cannot reach {target.host} over SSH: {result.stderr.strip()}",
                Platform.EC2_DOCKER.value,
            )
        return CommandResult(result.returncode, result.stdout, result.stderr)

    def docker(self, target: SSHTarget, *args: str, timeout: Optional[int] = None) -> CommandResult:
        """Run `docker <args>` remotely with every argument shell-quoted."""
        command = " ".join(["docker", *(shlex.quote(str(a)) for a in args)])
        return self.execute(target, command, timeout=timeout)

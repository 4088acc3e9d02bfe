'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import io
import os
import logging
import tarfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import docker
from docker.models.containers import Container

from fvharness.lib.retry_lib import poll_until
from fvharness.parsers.schemas import HarnessConfig, Role

log = logging.getLogger(__name__)


class ContainerManager:
    """
    Lifecycle of the harness containers on the local Docker daemon.

    Every call takes a Role; the container name is derived from the run's
    configuration, so two runs with different unique suffixes never touch
    each other's containers.
    """

    def __init__(self, config: HarnessConfig, client: Optional[docker.DockerClient] = None, sleep=time.sleep):
        self.config = config
        self.client = client if client is not None else docker.from_env()
        self._sleep = sleep

    def name(self, role: Role) -> str:
        return self.config.container_name(role)

    def get(self, role: Role) -> Container:
        return self.client.containers.get(self.name(role))

    # -------------------------------------------------------------------------
    # Create / remove
    # -------------------------------------------------------------------------

    def remove_all(self) -> List[str]:
        """
        Force-remove every container of this run, ignoring ones that do not exist.

        Returns the names that were actually removed. Afterwards all containers
        on the daemon are listed for the operator.
        """
        removed = []
        for role in (Role.DATASTORE, Role.SUBJECT, Role.PROXY, Role.APISERVER):
            name = self.name(role)
            try:
                self.client.containers.get(name).remove(force=True)
                removed.append(name)
                log.info(f'Removed container {name}')
            except docker.errors.NotFound:
                pass
        self.print_container_listing()
        return removed

    def print_container_listing(self):
        print('Containers on this host:')
        for container in self.client.containers.list(all=True):
            print(f'  {container.name:<40} {container.status:<12} {container.short_id}')

    def start(self, role: Role, image: str, command=None, environment: Optional[Dict[str, str]] = None,
              volumes: Optional[Dict[str, Dict[str, str]]] = None, **kwargs) -> Container:
        """
        Launch a detached container for role and return without waiting for readiness.

        Extra keyword arguments go straight to docker's containers.run().
        """
        name = self.name(role)
        log.info(f'Starting container {name}')
        log.info(f'  Image: {image}')
        if command:
            log.debug(f'  Command: {command}')
        container = self.client.containers.run(
            image,
            command,
            name=name,
            detach=True,
            environment=environment or {},
            volumes=volumes or {},
            **kwargs,
        )
        log.info(f'Container {name} started (ID: {container.short_id})')
        return container

    # -------------------------------------------------------------------------
    # Inspect
    # -------------------------------------------------------------------------

    def _attrs(self, role: Role) -> dict:
        container = self.get(role)
        container.reload()
        return container.attrs

    def ip_of(self, role: Role) -> str:
        """IP address of the container on its first attached network."""
        settings = self._attrs(role).get('NetworkSettings', {})
        ip = settings.get('IPAddress')
        if not ip:
            for network in settings.get('Networks', {}).values():
                if network.get('IPAddress'):
                    ip = network['IPAddress']
                    break
        if not ip:
            raise RuntimeError(f'Container {self.name(role)} has no IP address')
        return ip

    def hostname_of(self, role: Role) -> str:
        return self._attrs(role)['Config']['Hostname']

    def is_running(self, role: Role) -> bool:
        try:
            container = self.get(role)
            container.reload()
        except docker.errors.NotFound:
            return False
        # docker ps also lists containers being restarted by their restart policy
        return container.status in ('running', 'restarting')

    def logs(self, role: Role) -> str:
        output = self.get(role).logs(stdout=True, stderr=True)
        return output.decode('utf-8', errors='replace') if isinstance(output, bytes) else str(output)

    def list_run_containers(self) -> List[Dict[str, str]]:
        """Name, status and image of every container belonging to this run."""
        names = set(self.config.container_names)
        rows = []
        for container in self.client.containers.list(all=True):
            if container.name in names:
                tags = container.image.tags if container.image is not None else []
                rows.append({
                    'name': container.name,
                    'status': container.status,
                    'image': tags[0] if tags else '',
                })
        return sorted(rows, key=lambda row: row['name'])

    # -------------------------------------------------------------------------
    # Exec / copy
    # -------------------------------------------------------------------------

    def exec(self, role: Role, cmd, environment: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
        """Run cmd inside the role's container; returns (exit_code, output)."""
        log.debug(f'Executing in {self.name(role)}: {cmd}')
        exit_code, output = self.get(role).exec_run(cmd, environment=environment)
        output_str = output.decode('utf-8', errors='replace') if isinstance(output, bytes) else str(output)
        return exit_code, output_str

    def exec_streaming(self, role: Role, cmd, environment: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
        """
        Execute command with real-time streaming output.

        Every line is logged as it arrives; blocks until the command exits.
        """
        container = self.get(role)
        api = self.client.api
        exec_result = api.exec_create(container.id, cmd, environment=environment, stdout=True, stderr=True)
        output_generator = api.exec_start(exec_result['Id'], stream=True, demux=True)

        output_lines = []
        # Chunks can end mid-line; hold the tail of each stream until its newline arrives
        pending = {'stdout': b'', 'stderr': b''}

        def _emit(stream_name, line):
            if line.strip():
                log.info(f'  [{stream_name}] {line}')
                output_lines.append(line)

        for stdout_chunk, stderr_chunk in output_generator:
            for stream_name, chunk in (('stdout', stdout_chunk), ('stderr', stderr_chunk)):
                if not chunk:
                    continue
                *lines, pending[stream_name] = (pending[stream_name] + chunk).split(b'\n')
                for line in lines:
                    _emit(stream_name, line.decode('utf-8', errors='replace').rstrip('\r'))

        for stream_name, tail in pending.items():
            if tail:
                _emit(stream_name, tail.decode('utf-8', errors='replace').rstrip('\r'))

        exec_info = api.exec_inspect(exec_result['Id'])
        exit_code = exec_info.get('ExitCode')
        if exit_code is None:
            exit_code = -1
        return exit_code, '\n'.join(output_lines)

    def copy_to(self, role: Role, host_path, container_dir: str) -> bool:
        """Copy a single host file into container_dir, keeping its basename."""
        host_path = Path(host_path)
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode='w') as tar:
            tar.add(str(host_path), arcname=host_path.name)
        return bool(self.get(role).put_archive(container_dir, buf.getvalue()))

    def copy_from(self, role: Role, container_path: str, host_dir) -> Path:
        """Copy a single file out of the container into host_dir; returns the host path."""
        bits, _stat = self.get(role).get_archive(container_path)
        buf = io.BytesIO(b''.join(bits))
        with tarfile.open(fileobj=buf, mode='r') as tar:
            member = next((m for m in tar.getmembers() if m.isfile()), None)
            if member is None:
                raise FileNotFoundError(f'{container_path} in {self.name(role)} is not a regular file')
            data = tar.extractfile(member).read()

        dest = Path(host_dir) / os.path.basename(container_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        return dest

    # -------------------------------------------------------------------------
    # Poll-retry
    # -------------------------------------------------------------------------

    def wait_until(self, role: Role, cmd, description: str) -> str:
        """
        Re-run cmd inside the role's container until it exits 0.

        Returns the output of the successful run. Raises RetryExhausted when
        the configured attempt budget is used up.
        """
        outputs = []

        def _check():
            exit_code, output = self.exec(role, cmd)
            if exit_code != 0:
                log.debug(f'{description}: exit code {exit_code}: {output.strip()[:500]}')
                return False
            outputs.append(output)
            return True

        self.poll(_check, description)
        return outputs[-1]

    def poll(self, predicate, description: str):
        """Poll-retry an arbitrary check with the run's interval and attempt budget."""
        return poll_until(
            predicate,
            description,
            interval=self.config.poll_interval,
            max_attempts=self.config.poll_max_attempts,
            retry_on=(docker.errors.APIError, docker.errors.NotFound, FileNotFoundError),
            sleep=self._sleep,
        )

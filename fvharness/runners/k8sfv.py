"""
k8sfv functional verification runner.

Provisions etcd, a Kubernetes API server, an optional Typha proxy and the
Felix subject as Docker containers, then runs the k8sfv test binary inside
the subject container. Uses the Docker SDK for container orchestration.

Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved.
"""

from pathlib import Path
from typing import Dict, List, Optional
import json
import time
import logging

import docker

from fvharness.lib import k8sfv_lib
from fvharness.lib.docker_lib import ContainerManager
from fvharness.parsers.junit_report import JUnitReportParser
from fvharness.parsers.schemas import HarnessConfig, Role
from fvharness.runners._base_runner import BaseRunner, RunResult, RunStatus

log = logging.getLogger(__name__)


ETCD_CLIENT_PORT = 2379
APISERVER_SECURE_PORT = 6443
TYPHA_PORT = 5473

APISERVER_CERT_PATH = "/var/run/kubernetes/apiserver.crt"
KUBECTL = ["/hyperkube", "kubectl"]


class K8sfvRunner(BaseRunner):
    """
    Runner for the k8sfv functional tests.

    Provisioning is strictly sequential; each step needs the previous one:
    1. Remove leftovers of an earlier run with the same name set
    2. Start etcd, then the API server pointed at it
    3. Grant the anonymous user cluster-admin (the test clients have no credentials)
    4. Install the CRDS manifest
    5. Extract the API server's self-signed certificate to the output directory
    6. Start Typha (optional), then Felix
    """

    def __init__(
        self,
        config: HarnessConfig,
        manager: Optional[ContainerManager] = None,
        parser: Optional[JUnitReportParser] = None,
    ):
        super().__init__(config)
        self.manager = manager if manager is not None else ContainerManager(config)
        self.parser = parser if parser is not None else JUnitReportParser()

        self.api_endpoint: Optional[str] = None
        self.typha_addr: Optional[str] = None
        self.subject_ip: Optional[str] = None
        self.subject_hostname: Optional[str] = None
        self.artifacts: Dict[str, Path] = {}

    @property
    def output_path(self) -> Path:
        return self.config.output_path

    @property
    def cert_path(self) -> Path:
        return self.output_path / k8sfv_lib.CERT_FILE_NAME

    @property
    def report_path(self) -> Path:
        return self.output_path / k8sfv_lib.REPORT_FILE_NAME

    @property
    def container_cert_path(self) -> str:
        return f"{k8sfv_lib.SHARED_OUTPUT_MOUNT}/{k8sfv_lib.CERT_FILE_NAME}"

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def setup(self) -> bool:
        errors = self.validate_config()
        if errors:
            for error in errors:
                log.error(error)
            return False

        if not self.config.test_binary_path.exists():
            log.warning(f"Test binary not found at {self.config.test_binary_path}; the test step will fail")

        # Idempotent entry: earlier runs may have left containers behind
        self.manager.remove_all()

        self.output_path.mkdir(parents=True, exist_ok=True)
        self.provision()
        return True

    def provision(self):
        etcd_ip = self._start_datastore()
        self._start_apiserver(etcd_ip)
        self._authorize_anonymous()
        self._install_manifests()
        self._extract_certificate()
        if self.config.use_typha:
            self._start_proxy()
        self._start_subject()

    def _start_datastore(self) -> str:
        self.manager.start(
            Role.DATASTORE,
            self.config.image_for(Role.DATASTORE),
            [
                "etcd",
                f"--advertise-client-urls=http://127.0.0.1:{ETCD_CLIENT_PORT}",
                f"--listen-client-urls=http://0.0.0.0:{ETCD_CLIENT_PORT}",
            ],
        )
        etcd_ip = self.manager.ip_of(Role.DATASTORE)
        log.info(f"etcd is at {etcd_ip}")
        return etcd_ip

    def _start_apiserver(self, etcd_ip: str) -> str:
        self.manager.start(
            Role.APISERVER,
            self.config.image_for(Role.APISERVER),
            [
                "/hyperkube",
                "apiserver",
                f"--etcd-servers=http://{etcd_ip}:{ETCD_CLIENT_PORT}",
                "--service-cluster-ip-range=10.101.0.0/16",
                f"--secure-port={APISERVER_SECURE_PORT}",
                "--authorization-mode=RBAC",
                f"--v={self.config.k8s_log_level}",
            ],
        )
        apiserver_ip = self.manager.ip_of(Role.APISERVER)
        self.api_endpoint = f"https://{apiserver_ip}:{APISERVER_SECURE_PORT}"
        log.info(f"API server endpoint is {self.api_endpoint}")
        return self.api_endpoint

    def _authorize_anonymous(self):
        self.manager.wait_until(
            Role.APISERVER,
            KUBECTL + [
                "create",
                "clusterrolebinding",
                "anonymous-admin",
                "--clusterrole=cluster-admin",
                "--user=system:anonymous",
            ],
            "Grant anonymous user cluster-admin",
        )

    def _install_manifests(self):
        crds = self.config.crds_path
        self.manager.poll(lambda: self.manager.copy_to(Role.APISERVER, crds, "/"), "Copy CRDS manifest")
        self.manager.wait_until(Role.APISERVER, KUBECTL + ["apply", "-f", f"/{crds.name}"], "Apply CRDS manifest")

    def _extract_certificate(self) -> Path:
        cert = self.manager.poll(
            lambda: self.manager.copy_from(Role.APISERVER, APISERVER_CERT_PATH, self.output_path),
            "Extract API server certificate",
        )
        self.artifacts["apiserver_cert"] = cert
        log.info(f"API server certificate written to {cert}")
        return cert

    def _shared_output_volume(self, mode: str) -> Dict[str, Dict[str, str]]:
        return {str(self.output_path): {"bind": k8sfv_lib.SHARED_OUTPUT_MOUNT, "mode": mode}}

    def _start_proxy(self) -> str:
        restarts = self.config.typha_restarts
        # MaximumRetryCount 0 would mean "retry forever"
        restart_policy = {"Name": "on-failure", "MaximumRetryCount": restarts} if restarts else {"Name": "no"}
        self.manager.start(
            Role.PROXY,
            self.config.image_for(Role.PROXY),
            environment={
                "TYPHA_LOGSEVERITYSCREEN": self.config.typha_log_severity,
                "TYPHA_DATASTORETYPE": "kubernetes",
                "K8S_API_ENDPOINT": self.api_endpoint,
                "K8S_CA_FILE": self.container_cert_path,
            },
            volumes=self._shared_output_volume("ro"),
            restart_policy=restart_policy,
        )
        typha_ip = self.manager.ip_of(Role.PROXY)
        typha_hostname = self.manager.hostname_of(Role.PROXY)
        self.typha_addr = f"{typha_ip}:{TYPHA_PORT}"
        log.info(f"Typha is at {self.typha_addr} (hostname {typha_hostname})")
        return self.typha_addr

    def _subject_environment(self) -> Dict[str, str]:
        env = {
            "FELIX_LOGSEVERITYSCREEN": self.config.felix_log_severity,
            "FELIX_DATASTORETYPE": "kubernetes",
            "K8S_API_ENDPOINT": self.api_endpoint,
            "K8S_CA_FILE": self.container_cert_path,
            "FELIX_PROMETHEUSMETRICSENABLED": "true",
            "FELIX_USAGEREPORTINGENABLED": "false",
        }
        if self.typha_addr:
            env["FELIX_TYPHAADDR"] = self.typha_addr
        return env

    def _start_subject(self):
        volumes = self._shared_output_volume("rw")
        volumes[str(self.config.test_binary_path.parent)] = {"bind": k8sfv_lib.TEST_BINARY_MOUNT, "mode": "ro"}

        self.manager.start(
            Role.SUBJECT,
            self.config.image_for(Role.SUBJECT),
            environment=self._subject_environment(),
            volumes=volumes,
            privileged=True,
            hostname=self.config.container_name(Role.SUBJECT),
            # Felix exits on some config changes and expects to be restarted
            restart_policy={"Name": "always"},
        )
        self.subject_ip = self.manager.ip_of(Role.SUBJECT)
        self.subject_hostname = self.manager.hostname_of(Role.SUBJECT)
        log.info(f"Felix is at {self.subject_ip} (hostname {self.subject_hostname})")

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, **kwargs) -> RunResult:
        """
        Run the test binary and decide the final exit status.

        The subject must still be running afterwards: a crashed Felix can make
        the tests pass without having exercised anything.
        """
        start_time = time.time()
        mode = k8sfv_lib.select_mode(self.config)
        log.info(f"Test selection: {mode.value}")

        if self.report_path.exists():
            self.report_path.unlink()

        cmd = k8sfv_lib.build_test_command(self.config, self.api_endpoint, self.subject_ip, self.subject_hostname)
        log.info(f"Running tests: {' '.join(cmd)}")
        try:
            test_status, output = self.manager.exec_streaming(Role.SUBJECT, cmd)
            log.info(f"Test binary exited with status {test_status}")
        except docker.errors.APIError as e:
            # Felix restarting or exited; the liveness check below reports it
            log.error(f"Could not run the test binary in {self.config.container_name(Role.SUBJECT)}: {e}")
            test_status, output = 1, ""

        parse_result = self.parser.parse_file(self.report_path)
        if parse_result.has_results:
            self.artifacts["junit_report"] = self.report_path
            log.info(f"Test report: {k8sfv_lib.summarize_report(parse_result)}")

        reasons = k8sfv_lib.evaluate_report(parse_result, mode, self.config.slow_spec_threshold)
        for reason in reasons:
            log.error(reason)
        exit_code = k8sfv_lib.effective_exit_status(test_status, reasons)

        subject_alive = self.manager.is_running(Role.SUBJECT)
        if not subject_alive:
            log.error("Felix is no longer running; failing the run regardless of the test status")
            self._dump_subject_logs()
            exit_code = 1

        result = RunResult(
            status=RunStatus.COMPLETED if exit_code == 0 else RunStatus.FAILED,
            start_time=start_time,
            end_time=time.time(),
            stdout=output,
            artifacts=dict(self.artifacts),
            error_message=self._error_message(test_status, reasons, subject_alive),
            test_exit_code=test_status,
            exit_code=exit_code,
            subject_alive=subject_alive,
            metadata={
                "selection": mode.value,
                "api_endpoint": self.api_endpoint,
                "felix_ip": self.subject_ip,
                "felix_hostname": self.subject_hostname,
                "typha_addr": self.typha_addr,
                "code_level": self.config.code_level,
                "report_status": parse_result.status.value,
                "report_verdict": reasons,
            },
        )
        self._write_summary(result)
        return result

    @staticmethod
    def _error_message(test_status: int, reasons: List[str], subject_alive: bool) -> Optional[str]:
        if not subject_alive:
            return "Felix container is not running after the tests"
        if test_status != 0:
            return f"Test binary exited with status {test_status}"
        if reasons:
            return f"Test report rejected the run: {len(reasons)} problem(s)"
        return None

    def _dump_subject_logs(self):
        name = self.config.container_name(Role.SUBJECT)
        try:
            logs = self.manager.logs(Role.SUBJECT)
        except docker.errors.NotFound:
            log.error(f"No logs available: container {name} no longer exists")
            return
        print(f"#==================== {name} logs ====================#")
        print(logs)

    def _write_summary(self, result: RunResult):
        summary_path = self.output_path / k8sfv_lib.SUMMARY_FILE_NAME
        result.artifacts["summary"] = summary_path
        with open(summary_path, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        log.info(f"Run summary written to {summary_path}")

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def teardown(self) -> bool:
        """Remove the run's containers if CLEANUP is set, otherwise leave them for inspection."""
        if self.config.cleanup:
            log.info("Cleaning up containers")
            self.manager.remove_all()
        else:
            log.info(f"Leaving containers for inspection: {', '.join(self.config.container_names)}")
        return True

"""
In-memory drivers for tests.

They expose the same primitives the adapters call on the real drivers and
raise the same taxonomy errors, so dispatcher round trips can run without
Docker, AWS or a cluster.
"""

import copy
from typing import Any, Dict, List, Optional

from unideploy.models.container import Platform
from unideploy.services.drivers.base import ContainerDriver
from unideploy.services.errors import BackendFailure, NotFound


class FakeDockerDriver(ContainerDriver):
    """Local Docker engine holding containers in a dict."""

    def __init__(self, version: str = "27.0.3"):
        self.containers: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self._version = version
        self.fail_remove = False

    @property
    def platform(self) -> Platform:
        return Platform.LOCAL_DOCKER

    def version(self) -> Optional[str]:
        return self._version

    def _get(self, name: str) -> Dict[str, Any]:
        if name not in self.containers:
            raise NotFound(f"Container '{name}' not found", Platform.LOCAL_DOCKER.value)
        return self.containers[name]

    def _summary(self, name: str) -> Dict[str, Any]:
        c = self.containers[name]
        return {
            "id": c["id"],
            "name": name,
            "image": c["image"],
            "status": "running" if c["running"] else "exited",
            "running": c["running"],
            "health": None,
            "ports": c["ports"],
            "started_at": "2026-01-01T00:00:00Z",
        }

    def run(self, image, name, ports=None, environment=None, mem_limit=None, nano_cpus=None,
            restart_policy="unless-stopped"):
        self.calls.append("run")
        self.containers[name] = {
            "id": f"{len(self.containers) + 1:012d}",
            "image": image,
            "ports": dict(ports or {}),
            "environment": list(environment or []),
            "mem_limit": mem_limit,
            "nano_cpus": nano_cpus,
            "restart_policy": restart_policy,
            "running": True,
            "logs": [f"starting {image}", "listening"],
        }
        return self._summary(name)

    def inspect(self, name):
        self.calls.append("inspect")
        c = self._get(name)
        return {
            "summary": self._summary(name),
            "attrs": {"State": {"Status": "running" if c["running"] else "exited", "Running": c["running"]}},
        }

    def stop(self, name, timeout=10):
        self.calls.append("stop")
        self._get(name)["running"] = False

    def remove(self, name, force=True):
        self.calls.append("remove")
        self._get(name)
        if self.fail_remove:
            raise BackendFailure(f"Failed to remove container {name}: device busy", Platform.LOCAL_DOCKER.value)
        del self.containers[name]

    def logs(self, name, tail=100):
        self.calls.append("logs")
        return "\n".join(self._get(name)["logs"][-tail:])


class FakeKubernetesDriver(ContainerDriver):
    """Cluster whose deployments become ready as soon as they are applied."""

    def __init__(self, version: str = "v1.30.2"):
        self.deployments: Dict[tuple, Dict[str, Any]] = {}
        self.services: Dict[tuple, Dict[str, Any]] = {}
        self.ingresses: Dict[tuple, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self._version = version

    @property
    def platform(self) -> Platform:
        return Platform.KUBERNETES

    def version(self, context=None) -> Optional[str]:
        return self._version

    @staticmethod
    def _set_ready(deployment: Dict[str, Any]) -> None:
        replicas = deployment["spec"]["replicas"]
        deployment["status"] = {
            "replicas": replicas,
            "readyReplicas": replicas,
            "availableReplicas": replicas,
            "updatedReplicas": replicas,
        }

    def _deployment(self, name, namespace) -> Dict[str, Any]:
        key = (namespace, name)
        if key not in self.deployments:
            raise NotFound(f"Deployment '{name}' not found in namespace '{namespace}'", Platform.KUBERNETES.value)
        return self.deployments[key]

    def apply_deployment(self, namespace, body, context=None):
        self.calls.append("apply_deployment")
        deployment = copy.deepcopy(body)
        self._set_ready(deployment)
        self.deployments[(namespace, body["metadata"]["name"])] = deployment
        return copy.deepcopy(deployment)

    def apply_service(self, namespace, body, context=None):
        self.calls.append("apply_service")
        service = copy.deepcopy(body)
        service["spec"]["clusterIP"] = "10.96.0.10"
        self.services[(namespace, body["metadata"]["name"])] = service
        return copy.deepcopy(service)

    def apply_ingress(self, namespace, body, context=None):
        self.calls.append("apply_ingress")
        self.ingresses[(namespace, body["metadata"]["name"])] = copy.deepcopy(body)
        return copy.deepcopy(body)

    def read_deployment(self, name, namespace, context=None):
        self.calls.append("read_deployment")
        return copy.deepcopy(self._deployment(name, namespace))

    def scale_deployment(self, name, namespace, replicas, context=None):
        self.calls.append("scale_deployment")
        deployment = self._deployment(name, namespace)
        deployment["spec"]["replicas"] = replicas
        self._set_ready(deployment)
        return {"spec": {"replicas": replicas}}

    def set_image(self, name, namespace, container, image, context=None):
        self.calls.append("set_image")
        deployment = self._deployment(name, namespace)
        for c in deployment["spec"]["template"]["spec"]["containers"]:
            if c["name"] == container:
                c["image"] = image
        return copy.deepcopy(deployment)

    def rollback_to_revision(self, name, namespace, revision, context=None):
        self.calls.append("rollback_to_revision")
        self._deployment(name, namespace)
        if revision > 1:
            raise NotFound(f"Revision {revision} of deployment '{name}' not found", Platform.KUBERNETES.value)
        return {}

    def _delete(self, store, kind, name, namespace):
        self.calls.append(f"delete_{kind}")
        if store.pop((namespace, name), None) is None:
            raise NotFound(f"Delete {kind} {name}: not found", Platform.KUBERNETES.value)

    def delete_deployment(self, name, namespace, context=None):
        self._delete(self.deployments, "deployment", name, namespace)

    def delete_service(self, name, namespace, context=None):
        self._delete(self.services, "service", name, namespace)

    def delete_ingress(self, name, namespace, context=None):
        self._delete(self.ingresses, "ingress", name, namespace)

    def list_pods(self, namespace, label_selector, context=None):
        self.calls.append("list_pods")
        app = label_selector.split("=", 1)[1]
        deployment = self.deployments.get((namespace, app))
        if deployment is None:
            return []
        return [
            {
                "name": f"{app}-7d4b9c-{i}",
                "namespace": namespace,
                "status": "Running",
                "ready": True,
                "restarts": 0,
                "age": "1m",
                "node": "node-1",
            }
            for i in range(deployment["spec"]["replicas"])
        ]

    def read_pod_log(self, name, namespace, tail=100, context=None):
        self.calls.append("read_pod_log")
        return "\n".join(f"{name} line {i}" for i in range(min(tail, 3)))

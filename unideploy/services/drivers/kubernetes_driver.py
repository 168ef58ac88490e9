"""Kubernetes cluster driver."""

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from unideploy.models.container import Platform
from unideploy.services.drivers.base import ContainerDriver
from unideploy.services.errors import BackendFailure, NotFound
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="K8s")

REVISION_ANNOTATION = "deployment.kubernetes.io/revision"


def _error_detail(e: ApiException) -> str:
    """Extract the most useful message from a K8s API error body."""
    detail = e.reason
    if getattr(e, "body", None):
        try:
            body = json.loads(e.body)
            detail = body.get("message", detail)
        except (json.JSONDecodeError, TypeError):
            pass
    return detail


class KubernetesDriver(ContainerDriver):
    """
    Kubernetes API access through the official Python client.

    One ApiClient is kept per kube context. Configuration comes from the
    kubeconfig file (KUBECONFIG or ~/.kube/config) and falls back to the
    in-cluster service account when no file is available.
    """

    def __init__(self, kubeconfig: Optional[str] = None):
        self.kubeconfig = kubeconfig
        self._clients: Dict[str, client.ApiClient] = {}
        self._lock = threading.Lock()

    @property
    def platform(self) -> Platform:
        return Platform.KUBERNETES

    def api_client(self, context: Optional[str] = None) -> client.ApiClient:
        key = context or ""
        with self._lock:
            if key not in self._clients:
                self._clients[key] = self._load_client(context)
            return self._clients[key]

    def _load_client(self, context: Optional[str]) -> client.ApiClient:
        try:
            return config.new_client_from_config(config_file=self.kubeconfig, context=context)
        except config.ConfigException as e:
            if context:
                raise BackendFailure(f"Kubernetes context '{context}' unavailable: {e}", Platform.KUBERNETES.value)
            kubeconfig_error = e

        try:
            config.load_incluster_config()
        except config.ConfigException:
            raise BackendFailure(
                f"No Kubernetes configuration found: {kubeconfig_error}",
                Platform.KUBERNETES.value,
            )
        logger.info("Using in-cluster Kubernetes configuration")
        return client.ApiClient()

    def _call(self, action: str, fn: Callable, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise NotFound(f"{action}: not found", Platform.KUBERNETES.value)
            logger.error(f"K8s API error during {action}: {e.status} {e.reason}")
            raise BackendFailure(f"{action} failed: {_error_detail(e)}", Platform.KUBERNETES.value)

    def serialize(self, obj, context: Optional[str] = None) -> Any:
        return self.api_client(context).sanitize_for_serialization(obj)

    def version(self, context: Optional[str] = None) -> Optional[str]:
        version_api = client.VersionApi(self.api_client(context))
        return self._call("Get server version", version_api.get_code).git_version

    # -------------------------------------------------------------------------
    # Apply (create or update)
    # -------------------------------------------------------------------------

    def apply_deployment(self, namespace: str, body: Dict[str, Any], context: Optional[str] = None) -> Dict[str, Any]:
        apps_api = client.AppsV1Api(self.api_client(context))
        name = body["metadata"]["name"]
        try:
            result = apps_api.create_namespaced_deployment(namespace=namespace, body=body)
            logger.info(f"Created deployment {name} in {namespace}")
        except ApiException as e:
            if e.status != 409:
                raise BackendFailure(f"Create deployment {name} failed: {_error_detail(e)}", Platform.KUBERNETES.value)
            # Replace keeps the ReplicaSet history that revision rollback relies on
            result = self._call(
                f"Replace deployment {name}",
                apps_api.replace_namespaced_deployment,
                name=name, namespace=namespace, body=body,
            )
            logger.info(f"Replaced deployment {name} in {namespace}")
        return self.serialize(result, context)

    def apply_service(self, namespace: str, body: Dict[str, Any], context: Optional[str] = None) -> Dict[str, Any]:
        core_api = client.CoreV1Api(self.api_client(context))
        name = body["metadata"]["name"]
        try:
            result = core_api.create_namespaced_service(namespace=namespace, body=body)
            logger.info(f"Created service {name} in {namespace}")
        except ApiException as e:
            if e.status != 409:
                raise BackendFailure(f"Create service {name} failed: {_error_detail(e)}", Platform.KUBERNETES.value)
            result = self._call(
                f"Patch service {name}",
                core_api.patch_namespaced_service,
                name=name, namespace=namespace, body=body,
            )
            logger.info(f"Updated service {name} in {namespace}")
        return self.serialize(result, context)

    def apply_ingress(self, namespace: str, body: Dict[str, Any], context: Optional[str] = None) -> Dict[str, Any]:
        networking_api = client.NetworkingV1Api(self.api_client(context))
        name = body["metadata"]["name"]
        try:
            result = networking_api.create_namespaced_ingress(namespace=namespace, body=body)
            logger.info(f"Created ingress {name} in {namespace}")
        except ApiException as e:
            if e.status != 409:
                raise BackendFailure(f"Create ingress {name} failed: {_error_detail(e)}", Platform.KUBERNETES.value)
            result = self._call(
                f"Patch ingress {name}",
                networking_api.patch_namespaced_ingress,
                name=name, namespace=namespace, body=body,
            )
            logger.info(f"Updated ingress {name} in {namespace}")
        return self.serialize(result, context)

    # -------------------------------------------------------------------------
    # Deployments
    # -------------------------------------------------------------------------

    def _get_deployment(self, name: str, namespace: str, context: Optional[str] = None) -> client.V1Deployment:
        apps_api = client.AppsV1Api(self.api_client(context))
        try:
            return apps_api.read_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFound(f"Deployment '{name}' not found in namespace '{namespace}'", Platform.KUBERNETES.value)
            raise BackendFailure(f"Read deployment {name} failed: {_error_detail(e)}", Platform.KUBERNETES.value)

    def read_deployment(self, name: str, namespace: str, context: Optional[str] = None) -> Dict[str, Any]:
        """Deployment as a camelCase dict (the API wire form)."""
        return self.serialize(self._get_deployment(name, namespace, context), context)

    def scale_deployment(self, name: str, namespace: str, replicas: int, context: Optional[str] = None) -> Dict[str, Any]:
        apps_api = client.AppsV1Api(self.api_client(context))
        result = self._call(
            f"Scale deployment {name}",
            apps_api.patch_namespaced_deployment_scale,
            name=name, namespace=namespace, body={"spec": {"replicas": replicas}},
        )
        logger.info(f"Scaled deployment {name} to {replicas} replicas")
        return self.serialize(result, context)

    def set_image(self, name: str, namespace: str, container: str, image: str, context: Optional[str] = None) -> Dict[str, Any]:
        apps_api = client.AppsV1Api(self.api_client(context))
        body = {"spec": {"template": {"spec": {"containers": [{"name": container, "image": image}]}}}}
        result = self._call(
            f"Update image of {name}",
            apps_api.patch_namespaced_deployment,
            name=name, namespace=namespace, body=body,
        )
        logger.info(f"Deployment {name} container {container} set to {image}")
        return self.serialize(result, context)

    def rollback_to_revision(self, name: str, namespace: str, revision: int, context: Optional[str] = None) -> Dict[str, Any]:
        """Restore the pod template recorded by the ReplicaSet of `revision`."""
        deployment = self._get_deployment(name, namespace, context)
        apps_api = client.AppsV1Api(self.api_client(context))

        match_labels = deployment.spec.selector.match_labels or {}
        selector = ",".join(f"{k}={v}" for k, v in match_labels.items())
        replica_sets = self._call(
            f"List ReplicaSets of {name}",
            apps_api.list_namespaced_replica_set,
            namespace=namespace, label_selector=selector,
        ).items

        target = None
        for rs in replica_sets:
            owners = rs.metadata.owner_references or []
            if not any(o.uid == deployment.metadata.uid for o in owners):
                continue
            if (rs.metadata.annotations or {}).get(REVISION_ANNOTATION) == str(revision):
                target = rs
                break
        if target is None:
            raise NotFound(f"Revision {revision} of deployment '{name}' not found", Platform.KUBERNETES.value)

        template = self.serialize(target.spec.template, context)
        template.get("metadata", {}).get("labels", {}).pop("pod-template-hash", None)
        patch = [{"op": "replace", "path": "/spec/template", "value": template}]
        result = self._call(
            f"Roll back deployment {name}",
            apps_api.patch_namespaced_deployment,
            name=name, namespace=namespace, body=patch,
        )
        logger.info(f"Deployment {name} rolled back to revision {revision}")
        return self.serialize(result, context)

    def delete_deployment(self, name: str, namespace: str, context: Optional[str] = None) -> None:
        apps_api = client.AppsV1Api(self.api_client(context))
        self._call(f"Delete deployment {name}", apps_api.delete_namespaced_deployment, name=name, namespace=namespace)
        logger.info(f"Deleted deployment {name} in {namespace}")

    def delete_service(self, name: str, namespace: str, context: Optional[str] = None) -> None:
        core_api = client.CoreV1Api(self.api_client(context))
        self._call(f"Delete service {name}", core_api.delete_namespaced_service, name=name, namespace=namespace)
        logger.info(f"Deleted service {name} in {namespace}")

    def delete_ingress(self, name: str, namespace: str, context: Optional[str] = None) -> None:
        networking_api = client.NetworkingV1Api(self.api_client(context))
        self._call(f"Delete ingress {name}", networking_api.delete_namespaced_ingress, name=name, namespace=namespace)
        logger.info(f"Deleted ingress {name} in {namespace}")

    # -------------------------------------------------------------------------
    # Pods
    # -------------------------------------------------------------------------

    def list_pods(self, namespace: str, label_selector: str, context: Optional[str] = None) -> List[Dict[str, Any]]:
        """List pods with name, status, readiness, restarts and age."""
        core_api = client.CoreV1Api(self.api_client(context))
        pods_list = self._call(
            "List pods",
            core_api.list_namespaced_pod,
            namespace=namespace, label_selector=label_selector,
        )

        pods = []
        for pod in pods_list.items:
            statuses = pod.status.container_statuses or []
            restarts = sum(cs.restart_count for cs in statuses)
            ready = bool(statuses) and all(cs.ready for cs in statuses)

            status = pod.status.phase or "Pending"
            if pod.status.phase == "Running" and statuses:
                status = "Running" if ready else "Starting"
            for cs in statuses:
                if cs.state and cs.state.waiting:
                    status = cs.state.waiting.reason or "Waiting"
                elif cs.state and cs.state.terminated:
                    status = cs.state.terminated.reason or "Terminated"

            age = ""
            if pod.metadata.creation_timestamp:
                age_seconds = (datetime.now(timezone.utc) - pod.metadata.creation_timestamp).total_seconds()
                if age_seconds < 60:
                    age = f"{int(age_seconds)}s"
                elif age_seconds < 3600:
                    age = f"{int(age_seconds / 60)}m"
                elif age_seconds < 86400:
                    age = f"{int(age_seconds / 3600)}h"
                else:
                    age = f"{int(age_seconds / 86400)}d"

            pods.append({
                "name": pod.metadata.name,
                "namespace": pod.metadata.namespace,
                "status": status,
                "ready": ready,
                "restarts": restarts,
                "age": age,
                "node": pod.spec.node_name if pod.spec else None,
            })
        return pods

    def read_pod_log(self, name: str, namespace: str, tail: int = 100, context: Optional[str] = None) -> str:
        core_api = client.CoreV1Api(self.api_client(context))
        return self._call(
            f"Read logs of pod {name}",
            core_api.read_namespaced_pod_log,
            name=name, namespace=namespace, tail_lines=tail,
        )

"""Adapters for Kubernetes-compatible clusters (EKS included)."""

from typing import Any, Dict, List

from unideploy.config.settings import Settings
from unideploy.models.container import (
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    Operation,
    Platform,
    RollbackRequest,
    ScaleRequest,
    StatusRequest,
)
from unideploy.services.adapters.options import KubernetesOptions, parse_options
from unideploy.services.drivers.kubernetes_driver import KubernetesDriver
from unideploy.services.errors import ConfigurationMissing, NotFound
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="K8s")

MANAGED_BY = "unideploy"


def _labels(name: str) -> Dict[str, str]:
    return {"app": name, "app.kubernetes.io/managed-by": MANAGED_BY}


def _selector(name: str) -> str:
    return f"app={name}"


def build_manifests(
    request: DeploymentDescriptor,
    options: KubernetesOptions,
    settings: Settings,
) -> Dict[str, Dict[str, Any]]:
    """Deployment, Service and (optionally) Ingress manifests for a deploy request."""
    name = request.name
    port = request.port or settings.DEFAULT_CONTAINER_PORT
    labels = _labels(name)

    container: Dict[str, Any] = {
        "name": name,
        "image": request.image,
        "ports": [{"name": "http", "containerPort": port, "protocol": "TCP"}],
        "env": [{"name": key, "value": value} for key, value in request.env_pairs()],
    }
    if request.resources:
        limits = {
            key: value
            for key, value in (("cpu", request.resources.cpu), ("memory", request.resources.memory))
            if value
        }
        if limits:
            container["resources"] = {"limits": limits, "requests": dict(limits)}

    manifests = {
        "deployment": {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name, "namespace": options.namespace, "labels": labels},
            "spec": {
                "replicas": request.replicas,
                "selector": {"matchLabels": {"app": name}},
                "template": {
                    "metadata": {"labels": labels},
                    "spec": {"containers": [container]},
                },
            },
        },
        "service": {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {"name": name, "namespace": options.namespace, "labels": labels},
            "spec": {
                "type": options.service_type or ("LoadBalancer" if request.expose else "ClusterIP"),
                "selector": {"app": name},
                "ports": [{"name": "http", "port": port, "targetPort": port, "protocol": "TCP"}],
            },
        },
    }

    if options.ingress_host:
        manifests["ingress"] = {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "Ingress",
            "metadata": {"name": name, "namespace": options.namespace, "labels": labels},
            "spec": {
                "rules": [{
                    "host": options.ingress_host,
                    "http": {
                        "paths": [{
                            "path": "/",
                            "pathType": "Prefix",
                            "backend": {"service": {"name": name, "port": {"number": port}}},
                        }]
                    },
                }]
            },
        }
    return manifests


def deploy(driver: KubernetesDriver, request: DeploymentDescriptor, settings: Settings) -> Dict[str, Any]:
    options = parse_options(KubernetesOptions, request.platform_options)
    manifests = build_manifests(request, options, settings)
    namespace, context = options.namespace, options.context

    applied: List[str] = []
    driver.apply_deployment(namespace, manifests["deployment"], context=context)
    applied.append(f"deployment/{request.name}")
    service = driver.apply_service(namespace, manifests["service"], context=context)
    applied.append(f"service/{request.name}")
    if "ingress" in manifests:
        driver.apply_ingress(namespace, manifests["ingress"], context=context)
        applied.append(f"ingress/{request.name}")

    return {
        "name": request.name,
        "namespace": namespace,
        "image": request.image,
        "replicas": request.replicas,
        "serviceType": manifests["service"]["spec"]["type"],
        "ingressHost": options.ingress_host,
        "clusterIP": (service or {}).get("spec", {}).get("clusterIP"),
        "applied": applied,
    }


def scale(driver: KubernetesDriver, request: ScaleRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(KubernetesOptions, request.platform_options)
    driver.scale_deployment(request.name, options.namespace, request.replicas, context=options.context)
    return {
        "name": request.name,
        "namespace": options.namespace,
        "desiredReplicas": request.replicas,
    }


def rollback(driver: KubernetesDriver, request: RollbackRequest, settings: Settings) -> Dict[str, Any]:
    if not request.target_image and request.revision is None:
        raise ConfigurationMissing(
            "targetImage or revision is required for rollback on kubernetes",
            Platform.KUBERNETES.value,
        )
    options = parse_options(KubernetesOptions, request.platform_options)
    namespace, context = options.namespace, options.context

    deployment = driver.read_deployment(request.name, namespace, context=context)
    containers = deployment["spec"]["template"]["spec"]["containers"]
    previous_image = containers[0].get("image")

    if request.target_image:
        driver.set_image(request.name, namespace, containers[0]["name"], request.target_image, context=context)
        logger.info(f"Deployment {request.name} rolled back to image {request.target_image}")
        return {
            "name": request.name,
            "namespace": namespace,
            "rolledBackTo": request.target_image,
            "previousImage": previous_image,
        }

    driver.rollback_to_revision(request.name, namespace, request.revision, context=context)
    return {
        "name": request.name,
        "namespace": namespace,
        "rolledBackTo": f"revision {request.revision}",
        "previousImage": previous_image,
    }


def status(driver: KubernetesDriver, request: StatusRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(KubernetesOptions, request.platform_options)
    namespace, context = options.namespace, options.context

    deployment = driver.read_deployment(request.name, namespace, context=context)
    pods = driver.list_pods(namespace, _selector(request.name), context=context)

    deployment_status = deployment.get("status") or {}
    desired = deployment.get("spec", {}).get("replicas", 0) or 0
    ready_replicas = deployment_status.get("readyReplicas", 0) or 0
    return {
        "name": request.name,
        "namespace": namespace,
        "running": ready_replicas > 0 or any(p["status"] == "Running" for p in pods),
        "ready": ready_replicas >= desired,
        "desiredReplicas": desired,
        "readyReplicas": ready_replicas,
        "availableReplicas": deployment_status.get("availableReplicas", 0) or 0,
        "updatedReplicas": deployment_status.get("updatedReplicas", 0) or 0,
        "pods": pods,
        "raw": deployment_status,
    }


def logs(driver: KubernetesDriver, request: LogsRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(KubernetesOptions, request.platform_options)
    namespace, context = options.namespace, options.context

    pods = driver.list_pods(namespace, _selector(request.name), context=context)
    if not pods:
        raise NotFound(
            f"No pods found for '{request.name}' in namespace '{namespace}'",
            Platform.KUBERNETES.value,
        )

    pod = pods[0]["name"]
    text = driver.read_pod_log(pod, namespace, tail=request.tail, context=context) or ""
    return {
        "name": request.name,
        "unit": pod,
        "tail": request.tail,
        "lines": len(text.splitlines()),
        "logs": text,
    }


def delete(driver: KubernetesDriver, request: DeleteRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(KubernetesOptions, request.platform_options)
    namespace, context = options.namespace, options.context

    driver.read_deployment(request.name, namespace, context=context)

    deleted: List[str] = []
    # Ingress and Service are optional companions of the Deployment
    for kind, delete_fn in (("ingress", driver.delete_ingress), ("service", driver.delete_service)):
        try:
            delete_fn(request.name, namespace, context=context)
            deleted.append(f"{kind}/{request.name}")
        except NotFound:
            logger.debug(f"No {kind} {request.name} in {namespace}")

    driver.delete_deployment(request.name, namespace, context=context)
    deleted.append(f"deployment/{request.name}")
    return {"name": request.name, "namespace": namespace, "deleted": deleted}


ADAPTERS = {
    Operation.DEPLOY: deploy,
    Operation.SCALE: scale,
    Operation.ROLLBACK: rollback,
    Operation.STATUS: status,
    Operation.LOGS: logs,
    Operation.DELETE: delete,
}

UNSUPPORTED_HINTS: Dict[Operation, str] = {}

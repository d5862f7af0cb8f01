"""
App Stacks
Namespace, Deployment/Service/autoscaler and Emissary ingress per environment
"""
import pulumi
import pulumi_kubernetes as k8s

from ..config import StackConfig
from ..references import StackReferences
from .common import cluster_provider, k8s_opts
from .emissary import create_route


def create_app_init_stack(ctx, env):
    """Namespace the environment's db, app and ingress stacks deploy into"""
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)

    namespace = k8s.core.v1.Namespace(f"app-{env}",
        metadata=k8s.meta.v1.ObjectMetaArgs(
            name=f"app-{env}",
            labels={"environment": env},
        ),
        opts=k8s_opts(provider))

    return {"namespace": namespace.metadata.name}


def create_app_stack(ctx, env):
    config = StackConfig()
    refs = StackReferences(ctx)
    provider = cluster_provider(refs)
    namespace = refs.get_output(f"app-{env}-init", "namespace")
    app_name = f"{ctx.project}-{env}"
    labels = {"app": app_name}

    deployment = k8s.apps.v1.Deployment(app_name,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=app_name, namespace=namespace),
        spec=k8s.apps.v1.DeploymentSpecArgs(
            replicas=2 if env == "prod" else 1,
            selector=k8s.meta.v1.LabelSelectorArgs(match_labels=labels),
            template=k8s.core.v1.PodTemplateSpecArgs(
                metadata=k8s.meta.v1.ObjectMetaArgs(
                    labels=labels,
                    annotations={
                        "dapr.io/enabled": "true",
                        "dapr.io/app-id": app_name,
                        "dapr.io/app-port": str(config.app_port),
                    },
                ),
                spec=k8s.core.v1.PodSpecArgs(
                    containers=[k8s.core.v1.ContainerArgs(
                        name=app_name,
                        image=config.app_image,
                        ports=[k8s.core.v1.ContainerPortArgs(container_port=config.app_port)],
                        env_from=[k8s.core.v1.EnvFromSourceArgs(
                            secret_ref=k8s.core.v1.SecretEnvSourceArgs(name="db-credentials", optional=True),
                        )],
                        resources=k8s.core.v1.ResourceRequirementsArgs(
                            requests={"cpu": "100m", "memory": "128Mi"},
                        ),
                    )],
                ),
            ),
        ),
        opts=k8s_opts(provider))

    service = k8s.core.v1.Service(app_name,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=app_name, namespace=namespace),
        spec=k8s.core.v1.ServiceSpecArgs(
            selector=labels,
            ports=[k8s.core.v1.ServicePortArgs(port=80, target_port=config.app_port)],
        ),
        opts=k8s_opts(provider))

    k8s.autoscaling.v2.HorizontalPodAutoscaler(app_name,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=app_name, namespace=namespace),
        spec=k8s.autoscaling.v2.HorizontalPodAutoscalerSpecArgs(
            scale_target_ref=k8s.autoscaling.v2.CrossVersionObjectReferenceArgs(
                api_version="apps/v1",
                kind="Deployment",
                name=deployment.metadata.name,
            ),
            min_replicas=1,
            max_replicas=5,
            metrics=[k8s.autoscaling.v2.MetricSpecArgs(
                type="Resource",
                resource=k8s.autoscaling.v2.ResourceMetricSourceArgs(
                    name="cpu",
                    target=k8s.autoscaling.v2.MetricTargetArgs(type="Utilization", average_utilization=70),
                ),
            )],
        ),
        opts=k8s_opts(provider))

    return {
        "deployment_name": deployment.metadata.name,
        "service_name": service.metadata.name,
        "service_port": 80,
        "namespace": namespace,
    }


def create_app_ingress_stack(ctx, env):
    """Route <hostname> (prod) or <env>.<hostname> to the app service"""
    config = StackConfig()
    if not config.hostname:
        raise ValueError(f"app-{env}-ingress needs 'hostname' config")

    refs = StackReferences(ctx)
    provider = cluster_provider(refs)
    app_hostname = config.hostname if env == "prod" else f"{env}.{config.hostname}"
    tls_output = "tls_secret_name" if env == "prod" else "wildcard_tls_secret_name"

    service = pulumi.Output.all(
        refs.get_output(f"app-{env}", "service_name"),
        refs.get_output(f"app-{env}-init", "namespace"),
        refs.get_output(f"app-{env}", "service_port"),
    ).apply(lambda args: f"{args[0]}.{args[1]}:{args[2]}")

    create_route(f"app-{env}", app_hostname,
        tls_secret_name=refs.get_output("tls", tls_output),
        namespace=refs.get_output("emissary", "namespace"),
        service=service,
        provider=provider)

    return {"url": f"https://{app_hostname}"}

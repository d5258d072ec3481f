#!/usr/bin/env python
"""Command-line interface for kube-arango-trust.

The CLI runs a single reconciliation pass against a live cluster, which
is handy for bootstrapping credentials by hand or debugging a deployment
the operator refuses to secure.
"""

import sys
from pathlib import Path

import click
import yaml
from icecream import ic

from kube_arango_trust import __version__, console
from kube_arango_trust.client.factory import AuthPolicy, create_arangod_database_client
from kube_arango_trust.cluster import Cluster
from kube_arango_trust.exceptions import ClusterConnectionError, OperatorError
from kube_arango_trust.models import Deployment
from kube_arango_trust.secrets.reconciler import SecretReconciler, derive_profile
from kube_arango_trust.secrets.store import CachedSecretStore


def load_manifest(path: str) -> Deployment:
    """Load an ArangoDeployment from a YAML manifest.

    Args:
        path: Path to the manifest file.

    Returns:
        The deployment view of the manifest.

    Raises:
        click.ClickException: If the file cannot be read or parsed.

    """
    try:
        obj = yaml.safe_load(Path(path).read_text())
    except (OSError, yaml.YAMLError) as e:
        raise click.ClickException(f"Failed to load manifest '{path}': {e}") from e

    if not isinstance(obj, dict) or "name" not in (obj.get("metadata") or {}):
        raise click.ClickException(f"Manifest '{path}' is not an ArangoDeployment")
    return Deployment.from_object(obj)


def ensure_secrets(cluster: Cluster, deployment: Deployment) -> None:
    """Run one credential reconciliation pass and print a summary.

    Args:
        cluster: Cluster to reconcile against.
        deployment: The deployment whose credentials are ensured.

    """
    store = CachedSecretStore(cluster.secret_store(deployment.namespace))
    reconciler = SecretReconciler(store, deployment, timeout=cluster.request_timeout)

    console.action(f"Ensuring secrets of {console.highlight(f'{deployment.namespace}/{deployment.name}')}")
    created = reconciler.ensure_secrets()

    profile = derive_profile(deployment.spec)
    console.summary_panel(
        "Secrets Reconciled",
        {
            "Deployment": deployment.name,
            "Namespace": deployment.namespace,
            "Authentication": "enabled" if profile.auth_enabled else "disabled",
            "TLS": "enabled" if profile.tls_enabled else "disabled",
            "Created": ", ".join(created) if created else "nothing",
        },
    )


def probe_deployment(cluster: Cluster, deployment: Deployment, *, skip_auth: bool) -> None:
    """Fetch the server version through the deployment's client service.

    Args:
        cluster: Cluster holding the deployment secrets.
        deployment: The deployment to probe.
        skip_auth: Do not attach a credential.

    """
    auth = AuthPolicy.SKIP if skip_auth else AuthPolicy.DEFAULT
    if skip_auth and deployment.spec.is_authenticated():
        console.warning(f"Probing {console.highlight(deployment.name)} without credentials")
    db_client = create_arangod_database_client(
        cluster.secret_store(deployment.namespace), deployment, short_timeout=True, auth=auth
    )
    ic(db_client)
    version = db_client.version(timeout=cluster.request_timeout)
    click.echo(f"{version.get('server', 'arango')} {version.get('version', 'unknown')}")


@click.command(help="Reconcile the credentials of an ArangoDB deployment")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--context", required=False, help="kube-config context to use")
@click.option(
    "--namespace", "-n", default="default", show_default=True, envvar="KUBE_ARANGO_TRUST_NAMESPACE",
    help="namespace of the deployment",
)
@click.option("--deployment", "-d", required=False, envvar="KUBE_ARANGO_TRUST_DEPLOYMENT", help="deployment name")
@click.option("--manifest", "-f", required=False, help="ArangoDeployment manifest to use instead of the cluster copy")
@click.option("--probe", required=False, is_flag=True, help="print the server version instead of ensuring secrets")
@click.option("--skip-auth", required=False, is_flag=True, help="probe without authentication")
@click.option(
    "--timeout", default=30.0, show_default=True, envvar="KUBE_ARANGO_TRUST_TIMEOUT",
    help="deadline in seconds for every API call",
)
def cli(
    version: bool,
    debug: bool,
    context: str | None,
    namespace: str,
    deployment: str | None,
    manifest: str | None,
    probe: bool,
    skip_auth: bool,
    timeout: float,
) -> None:
    """Process CLI arguments and execute the appropriate action.

    Args:
        version: Print version and exit.
        debug: Enable debug output.
        context: Kube-config context.
        namespace: Namespace of the deployment.
        deployment: Name of the deployment to fetch from the cluster.
        manifest: Path to a deployment manifest overriding the cluster copy.
        probe: Probe the deployment instead of ensuring secrets.
        skip_auth: Probe without authentication.
        timeout: Deadline for API calls.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    if deployment is None and manifest is None:
        raise click.UsageError("Either --deployment or --manifest is required")

    try:
        cluster = Cluster(context=context, request_timeout=timeout)
        target = load_manifest(manifest) if manifest else cluster.get_deployment(deployment, namespace)
        ic(target.name, target.namespace)

        if probe:
            probe_deployment(cluster, target, skip_auth=skip_auth)
            return

        ensure_secrets(cluster, target)
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {e}")
        sys.exit(1)
    except OperatorError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    cli()

"""Main CLI entry point for secret-mgmt.

The commands are meant to be called by the provisioning tooling before
Terraform runs. `resolve` prints shell `export` lines so that a wrapper can
`eval` them into the environment Terraform is started from.
"""

import json
import shlex
from typing import Optional, Tuple

import click
import yaml

from secretmgmt import __version__
from secretmgmt.utils.errors import ErrorHandler
from secretmgmt.utils.logging import setup_logging


def _build_backends(settings):
    """Create the KMS client and secret store for the configured project."""
    from secretmgmt.backends import CloudKMSClient, CloudStorageStore, GoogleApiSession

    project_id = settings.require_project()
    api = GoogleApiSession(access_token=settings.access_token, timeout=settings.timeout)
    kms = CloudKMSClient(api, project_id, location=settings.location, keyring=settings.keyring)
    store = CloudStorageStore(api, project_id)
    return kms, store


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show what would be done without calling KMS or storage")
@click.option("--log-file", help="Log to file in addition to console")
@click.option("--project-id", help="GCP project id (default: $TF_VAR_project_id)")
@click.option("--modules-dir", help="Directory holding module manifests (default: modules)")
@click.option("--keys-config", help="Encryption key configuration file")
@click.option("--keyring", help="KMS key ring name (default: keyring)")
@click.option("--location", help="KMS location (default: global)")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    dry_run: bool,
    log_file: Optional[str],
    project_id: Optional[str],
    modules_dir: Optional[str],
    keys_config: Optional[str],
    keyring: Optional[str],
    location: Optional[str],
) -> None:
    """secret-mgmt - KMS-encrypted secrets for deployment modules.

    Secrets are declared per module in `secrets.yaml`, grouped under KMS
    encryption keys and stored encrypted in one Cloud Storage bucket per key.
    """
    from secretmgmt.config import Settings

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run
    ctx.obj["error_handler"] = ErrorHandler(verbose=verbose)
    ctx.obj["settings"] = Settings.from_environ(
        project_id=project_id,
        modules_dir=modules_dir,
        keys_config=keys_config,
        keyring=keyring,
        location=location,
    )

    setup_logging(verbose=verbose, log_file=log_file)


@cli.command()
@click.pass_context
def collect(ctx: click.Context) -> None:
    """Show secrets grouped by encryption key."""
    try:
        from secretmgmt.config import ConfigManager
        from secretmgmt.secrets import ManifestCollector

        settings = ctx.obj["settings"]
        config_manager = ConfigManager(settings)
        collector = ManifestCollector(
            config_manager.load_encryption_keys(), keys_config_path=settings.keys_config
        )
        groups = collector.collect_from_directory(config_manager)

        click.echo(yaml.dump({key: sorted(names) for key, names in groups.items()}, default_flow_style=False), nl=False)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Secret collection")


@cli.command()
@click.option(
    "--rotate-secrets",
    is_flag=True,
    help="Ignore stored secrets, reuse TF_VAR_* values or generate new ones, and re-upload",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["env", "json"]),
    default="env",
    help="Output format",
)
@click.pass_context
def resolve(ctx: click.Context, rotate_secrets: bool, output_format: str) -> None:
    """Fetch or provision all secrets and print them as environment variables."""
    try:
        from secretmgmt.config import ConfigManager
        from secretmgmt.secrets import ManifestCollector, ResolutionContext, SecretManager

        settings = ctx.obj["settings"]
        config_manager = ConfigManager(settings)
        encryption_keys = config_manager.load_encryption_keys()

        context = ResolutionContext.from_environ(keyring=settings.keyring, encryption_keys=encryption_keys)
        collector = ManifestCollector(encryption_keys, context=context, keys_config_path=settings.keys_config)
        groups = collector.collect_from_directory(config_manager)

        if ctx.obj["dry_run"]:
            for key, names in groups.items():
                if names:
                    action = "re-upload" if rotate_secrets else "fetch or provision"
                    click.echo(f"# DRY RUN: Would {action} {len(names)} secrets for key '{key}'")
            return

        kms, store = _build_backends(settings)
        SecretManager(kms, store, context).resolve(groups, force_rotate_values=rotate_secrets)

        variables = context.export_variables()
        if output_format == "json":
            click.echo(json.dumps(variables, indent=2, sort_keys=True))
        else:
            for name, value in variables.items():
                click.echo(f"export {name}={shlex.quote(value)}")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Secret resolution")


@cli.command("rotate-key")
@click.argument("keys", nargs=-1)
@click.option("--all", "rotate_all", is_flag=True, help="Rotate every configured encryption key")
@click.pass_context
def rotate_key(ctx: click.Context, keys: Tuple[str, ...], rotate_all: bool) -> None:
    """Create a new primary version for KEYS and disable all other versions."""
    if keys and rotate_all:
        raise click.UsageError("Pass key names or --all, not both")

    try:
        from secretmgmt.config import ConfigManager
        from secretmgmt.secrets import KeyRotationManager

        settings = ctx.obj["settings"]
        if rotate_all:
            keys = tuple(ConfigManager(settings).load_encryption_keys())

        if not keys:
            raise click.UsageError("No encryption keys given")

        if ctx.obj["dry_run"]:
            for key in keys:
                click.echo(f"DRY RUN: Would rotate key '{key}'")
            return

        kms, _ = _build_backends(settings)
        results = KeyRotationManager(kms).rotate_all(keys)
        for key, version_id in results.items():
            click.echo(f"✓ Key '{key}' rotated, primary version is now {version_id}")

    except click.UsageError:
        raise
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Key rotation")


if __name__ == "__main__":
    cli()

"""flagkeeper CLI entry point.

Administration commands for stored feature values:

    flagkeeper --app myapp.features:manager list --stored
    flagkeeper --app myapp.features:manager purge old-checkout --store redis
"""

from __future__ import annotations

import importlib

import click

from flagkeeper.core.features import FeatureManager, InvalidDriverError
from flagkeeper.core.features.decorator import Decorator


def load_manager(app: str | None) -> FeatureManager:
    """
    Locate the application's FeatureManager.

    ``app`` is ``"module:attribute"`` naming a FeatureManager instance or a
    zero-argument factory returning one. Without it, a manager is built from
    the environment settings.
    """
    if not app:
        return FeatureManager()

    module_name, _, attribute = app.partition(":")
    if not module_name or not attribute:
        raise click.BadParameter(
            f"Expected 'module:attribute', got '{app}'", param_hint="--app"
        )

    try:
        target = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise click.BadParameter(f"Cannot load '{app}': {e}", param_hint="--app") from e

    if not isinstance(target, FeatureManager) and callable(target):
        target = target()

    if not isinstance(target, FeatureManager):
        raise click.BadParameter(
            f"'{app}' is not a FeatureManager", param_hint="--app"
        )

    return target


def get_store(ctx: click.Context, name: str | None) -> Decorator:
    manager = ctx.obj["manager"]()
    try:
        return manager.store(name)
    except InvalidDriverError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--app",
    envvar="FLAGKEEPER_APP",
    help="FeatureManager to use, as module:attribute",
)
@click.pass_context
def cli(ctx: click.Context, app: str | None) -> None:
    """flagkeeper - manage stored feature flag values."""
    ctx.ensure_object(dict)
    cache: dict[str, FeatureManager] = {}

    def manager() -> FeatureManager:
        if "manager" not in cache:
            cache["manager"] = load_manager(app)
        return cache["manager"]

    ctx.obj["manager"] = manager


@cli.command("purge")
@click.argument("features", nargs=-1)
@click.option("--store", default=None, help="Store name (default store if omitted)")
@click.option(
    "--except",
    "excepted",
    multiple=True,
    help="Feature to keep; repeatable",
)
@click.option(
    "--except-defined",
    is_flag=True,
    help="Keep every feature defined by the application",
)
@click.pass_context
def purge(
    ctx: click.Context,
    features: tuple[str, ...],
    store: str | None,
    excepted: tuple[str, ...],
    except_defined: bool,
) -> None:
    """Purge stored feature values.

    FEATURES are the feature names to purge; all stored features when none
    are given.
    """
    decorator = get_store(ctx, store)

    if not excepted and not except_defined:
        decorator.purge(list(features) or None)
        click.echo("Features successfully purged from storage.")
        return

    keep = set(excepted)
    if except_defined:
        keep.update(decorator.defined())

    names = [name for name in (features or decorator.stored()) if name not in keep]
    if not names:
        click.echo("No features to purge from storage.")
        return

    decorator.purge(names)
    click.echo("Features successfully purged from storage.")


@cli.command("list")
@click.option("--store", default=None, help="Store name (default store if omitted)")
@click.option(
    "--defined/--stored",
    "show_defined",
    default=False,
    help="List defined features instead of stored ones",
)
@click.pass_context
def list_features(ctx: click.Context, store: str | None, show_defined: bool) -> None:
    """List stored (default) or defined feature names."""
    decorator = get_store(ctx, store)
    names = decorator.defined() if show_defined else decorator.stored()

    for name in names:
        click.echo(name)


if __name__ == "__main__":
    cli()

"""
cka CLI
Create a Kubernetes platform in AWS EKS, deploy apps onto it, or destroy it all
"""
import argparse
import logging
import os
import subprocess
import sys
import time

from pulumi import automation as auto

from . import __version__
from .automation import PulumiAutomation
from .config import APP_REQUIRED_KEYS, INIT_REQUIRED_KEYS, get_project_name, load_project_config
from .context import ExecutionContext
from .errors import CkaError
from .helpers import color, configure_logging, run_cli_cmd
from .plan import CLUSTER_STACKS, app_plan, full_plan, platform_plan
from .program import create_program
from .runner import bring_up, tear_down
from .store import ConfigStore

logger = logging.getLogger(__name__)

KUBECONFIG_FILE = "kubeconfig-devs.yaml"


def cli_options(args) -> dict:
    return {key: value for key, value in vars(args).items() if key != "handler"}


def build_context(command, cwd, config, project_name, options) -> ExecutionContext:
    return ExecutionContext(
        command=command,
        project=project_name,
        organization=config.pulumi_organization,
        cwd=cwd,
        global_config=config.global_config_map,
        cli_options=options,
        cli_env=os.environ.get("CKA_CLI_ENV"),
    )


def build_up_automation(ctx: ExecutionContext, store: ConfigStore) -> PulumiAutomation:
    """Automation that mirrors every applied stack's config to Pulumi.<stack>.yaml"""
    def after_pulumi_run(stack_name, config_map=None, **kwargs):
        store.persist(stack_name, config_map or {})

    return PulumiAutomation(ctx.project, ctx,
        debug=ctx.debug,
        global_config_map=ctx.global_config,
        after_pulumi_run=after_pulumi_run)


def export_kubeconfig(cwd, cluster_outputs, use_direnv=False):
    """Write the cluster kubeconfig for kubectl, optionally wiring it up with direnv"""
    path = os.path.join(cwd, KUBECONFIG_FILE)
    with open(path, "w") as f:
        f.write(cluster_outputs["kubeconfig"].value)

    if use_direnv:
        with open(os.path.join(cwd, ".envrc"), "w") as f:
            f.write(f"export KUBECONFIG={path}\n")
        run_cli_cmd(["direnv", "allow", "."], cwd=cwd)
        print(color("success", "✅ Exported kubeconfig for kubectl via direnv"))
    else:
        print(color("success", f"✅ Wrote kubeconfig; run: export KUBECONFIG={path}"))


def kubeconfig_exporter(cwd, use_direnv=False):
    """on_applied callback that writes the kubeconfig once the cluster stacks are up"""
    applied = {}

    def on_applied(stack_name, outputs):
        applied[stack_name] = outputs
        if stack_name == CLUSTER_STACKS[-1]:
            export_kubeconfig(cwd, applied[CLUSTER_STACKS[0]], use_direnv=use_direnv)

    return on_applied


def handle_init(args, cwd):
    print(color("info", "\nInitializing project...\n"))
    config = load_project_config(cwd)
    config.require_settings(*INIT_REQUIRED_KEYS)
    ctx = build_context("init", cwd, config, get_project_name(cwd), cli_options(args))
    print(f"debug={ctx.debug}\n")

    automation = build_up_automation(ctx, ConfigStore(cwd))
    bring_up(automation, platform_plan(config), create_program,
             on_applied=kubeconfig_exporter(cwd, use_direnv=config.use_direnv))

    print(color("final", f"\n🎉 Successfully created '{ctx.project}' project\n"))


def handle_app(args, cwd):
    print(color("info", "\nCreating app...\n"))
    config = load_project_config(cwd)
    config.require_settings(*APP_REQUIRED_KEYS)
    ctx = build_context("app", cwd, config, get_project_name(cwd), cli_options(args))
    print(f"debug={ctx.debug}\n")

    automation = build_up_automation(ctx, ConfigStore(cwd))
    outputs = bring_up(automation, app_plan(config), create_program)

    for stack, stack_outputs in outputs.items():
        if "url" in stack_outputs:
            print(color("output", f"🌐 {stack}: {stack_outputs['url'].value}"))
    print(color("final", "\n🎉 Successfully created app!!!\n"))


def handle_destroy(args, cwd):
    print(color("info", "\nDestroying project...\n"))
    config = load_project_config(cwd)
    ctx = build_context("destroy", cwd, config, get_project_name(cwd), cli_options(args))
    print(f"debug={ctx.debug} keep_cluster={args.keep_cluster}\n")

    store = ConfigStore(cwd)

    def after_pulumi_run(stack_name, remove=False, **kwargs):
        if remove:
            store.remove(stack_name)

    automation = PulumiAutomation(ctx.project, ctx,
        debug=ctx.debug,
        after_pulumi_run=after_pulumi_run)

    keep = CLUSTER_STACKS if args.keep_cluster else ()
    tear_down(automation, full_plan(config), remove=config.remove_stacks, keep=keep)

    print(color("final", f"\n🎉 Successfully destroyed '{ctx.project}' project\n"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cka",
        description="Kubernetes platform in AWS EKS, managed with Pulumi")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="create a Kubernetes cluster in AWS EKS using Pulumi")
    init.add_argument("--debug", action="store_true", help="show logs")
    init.set_defaults(handler=handle_init)

    app = subparsers.add_parser("app", help="create app")
    app.add_argument("--debug", action="store_true", help="show logs")
    app.set_defaults(handler=handle_app)

    destroy = subparsers.add_parser("destroy", help="destroy the entire project")
    destroy.add_argument("--keep-cluster", action="store_true", help="don't remove the kubernetes cluster")
    destroy.add_argument("--debug", action="store_true", help="show logs")
    destroy.set_defaults(handler=handle_destroy)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)
    cwd = os.getcwd()
    started = time.monotonic()

    try:
        args.handler(args, cwd)
    except (CkaError, auto.CommandError, subprocess.CalledProcessError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(color("error", f"❌ {e}"), file=sys.stderr)
        return 1

    print(f"Done in {time.monotonic() - started:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())

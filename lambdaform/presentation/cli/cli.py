"""
CLI Module

Architectural Intent:
- Command-line interface for lambdaform
- Entry point for all user interactions
- Delegates to application use cases via composition root
- Supports --verbose/--debug flags for log level control
"""

import argparse
import sys
import asyncio
import logging
import traceback
from pathlib import Path
from lambdaform.application.use_cases.apply_instance import SSH_KEY_KIND
from lambdaform.domain.errors import (
    CapacityUnavailableError,
    DriftError,
    LambdaformError,
)
from lambdaform.domain.value_objects.instance_spec import DesiredInstanceSpec
from lambdaform.domain.value_objects.observed_instance import ObservedInstance
from lambdaform.domain.value_objects.ssh_key import SSHKeySpec, SSHKeyState
from lambdaform.infrastructure.composition_root import create_container
from lambdaform.infrastructure.config import load_config
from lambdaform.infrastructure.logging import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lambdaform",
        description="lambdaform: declarative Lambda Cloud instances, SSH keys and filesystems",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to config file (lambdaform.json)"
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Use the in-memory simulated cloud (no credentials, nothing persisted)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "instance-types", help="List instance types and regions with capacity"
    )
    subparsers.add_parser("instances", help="List all instances in the account")
    subparsers.add_parser("filesystems", help="List shared filesystems")

    instance_parser = subparsers.add_parser("instance", help="Manage a declared instance")
    instance_sub = instance_parser.add_subparsers(dest="action")

    apply_parser = instance_sub.add_parser(
        "apply", help="Create or replace an instance to match the declaration"
    )
    apply_parser.add_argument("address", help="Registry address for the instance")
    apply_parser.add_argument("--type", "-t", required=True, dest="instance_type")
    apply_parser.add_argument("--region", "-r", required=True)
    apply_parser.add_argument("--ssh-key", "-k", required=True, dest="ssh_key")
    apply_parser.add_argument("--filesystem", "-f", default=None)
    apply_parser.add_argument("--name", "-n", default=None)
    apply_parser.add_argument(
        "--recreate-on-drift",
        action="store_true",
        help="Launch a new instance if the tracked one was deleted externally",
    )

    refresh_parser = instance_sub.add_parser(
        "refresh", help="Refresh the tracked snapshot from the provider"
    )
    refresh_parser.add_argument("address")

    destroy_parser = instance_sub.add_parser("destroy", help="Terminate a tracked instance")
    destroy_parser.add_argument("address")

    show_parser = instance_sub.add_parser("show", help="Show an instance by id")
    show_parser.add_argument("instance_id")

    import_parser = instance_sub.add_parser(
        "import", help="Track an existing instance under an address"
    )
    import_parser.add_argument("address")
    import_parser.add_argument("instance_id")

    key_parser = subparsers.add_parser("ssh-key", help="Manage SSH keys")
    key_sub = key_parser.add_subparsers(dest="action")

    add_parser = key_sub.add_parser("add", help="Register an SSH public key")
    add_parser.add_argument("address")
    add_parser.add_argument("--name", "-n", required=True)
    add_parser.add_argument(
        "--public-key-file", "-p", required=True, help="Path to the public key"
    )

    key_refresh_parser = key_sub.add_parser("refresh", help="Refresh a tracked SSH key")
    key_refresh_parser.add_argument("address")

    remove_parser = key_sub.add_parser("remove", help="Remove a tracked SSH key")
    remove_parser.add_argument("address")

    key_sub.add_parser("list", help="List SSH keys in the account")

    state_parser = subparsers.add_parser("state", help="Inspect tracked resources")
    state_sub = state_parser.add_subparsers(dest="action")
    state_list = state_sub.add_parser("list", help="List tracked resources")
    state_list.add_argument("--kind", default=None, choices=["instance", "ssh_key"])

    return parser


def _fail(label: str, error: Exception, verbose: bool) -> None:
    print(f"[-] {label}: {error}")
    if isinstance(error, DriftError):
        print("[*] Re-run with --recreate-on-drift to launch a replacement.")
    elif isinstance(error, CapacityUnavailableError):
        print(f"[*] Gave up after {error.attempts} capacity check(s).")
    if verbose:
        traceback.print_exc()
    sys.exit(1)


def _print_instance(instance: ObservedInstance) -> None:
    address = instance.ip if instance.is_network_ready else "-"
    print(
        f"  {instance.id}  {instance.name or '-'}  {instance.status}  "
        f"{instance.instance_type.name}  {instance.region.name}  {address}"
    )


async def async_main():
    parser = _build_parser()
    args = parser.parse_args()

    # Configure logging based on flags
    if args.debug:
        configure_logging(level=logging.DEBUG)
    elif args.verbose:
        configure_logging(level=logging.INFO)
    else:
        configure_logging(level=logging.WARNING)

    verbose = args.verbose or args.debug

    if args.command is None:
        parser.print_help()
        return

    try:
        config = load_config(args.config)
        container = create_container(config, simulate=args.simulate)
    except LambdaformError as e:
        _fail("Configuration error", e, verbose)
        return

    await container.telemetry.initialize()
    try:
        await _dispatch(parser, args, container, verbose)
    finally:
        await container.telemetry.export()
        container.state_store.close()


async def _dispatch(parser, args, container, verbose: bool) -> None:
    if args.command == "instance-types":
        try:
            offers = await container.instance_types_data_source.read()
        except LambdaformError as e:
            _fail("Listing instance types failed", e, verbose)
            return
        for offer in offers:
            regions = ", ".join(sorted(offer.region_names)) or "no capacity"
            print(
                f"  {offer.name:<24} ${offer.instance_type.price_dollars_per_hour:.2f}/hr"
                f"  {regions}"
            )
        return

    if args.command == "instances":
        try:
            instances = await container.instances_data_source.read()
        except LambdaformError as e:
            _fail("Listing instances failed", e, verbose)
            return
        print(f"[*] {len(instances)} instance(s)")
        for instance in instances:
            _print_instance(instance)
        return

    if args.command == "filesystems":
        try:
            filesystems = await container.filesystems_data_source.read()
        except LambdaformError as e:
            _fail("Listing filesystems failed", e, verbose)
            return
        for fs in filesystems:
            in_use = "in use" if fs.is_in_use else "idle"
            print(f"  {fs.id}  {fs.name}  {fs.region.name}  {fs.mount_point}  {in_use}")
        return

    if args.command == "instance":
        await _instance_command(parser, args, container, verbose)
        return

    if args.command == "ssh-key":
        await _ssh_key_command(parser, args, container, verbose)
        return

    if args.command == "state" and args.action == "list":
        for resource in container.state_store.list_resources(args.kind):
            print(
                f"  {resource['address']:<24} {resource['kind']:<10} "
                f"{resource['resource_id']}  (updated {resource['updated_at']})"
            )
        return

    parser.print_help()


async def _instance_command(parser, args, container, verbose: bool) -> None:
    if args.action == "apply":
        try:
            desired = DesiredInstanceSpec(
                instance_type_name=args.instance_type,
                region_name=args.region,
                ssh_key_names=(args.ssh_key,),
                filesystem_names=(args.filesystem,) if args.filesystem else (),
                name=args.name,
            )
            print(
                f"[*] Applying {args.address}: {desired.instance_type_name} "
                f"in {desired.region_name}..."
            )
            result = await container.apply_instance.execute(
                args.address, desired, recreate_on_drift=args.recreate_on_drift
            )
        except LambdaformError as e:
            _fail("Apply failed", e, verbose)
            return
        print(f"[+] {args.address}: {result.plan.describe()} -> {result.state.id}")
        for extra in getattr(result.state, "untracked_instance_ids", ()):
            print(f"[-] Untracked instance launched alongside: {extra}")
        return

    if args.action == "refresh":
        try:
            state = await container.refresh_instance.execute(args.address)
        except LambdaformError as e:
            _fail("Refresh failed", e, verbose)
            return
        status = state.observed.status if state.observed else "unknown"
        print(f"[+] {args.address}: {state.id} is {status}")
        return

    if args.action == "destroy":
        try:
            print(f"[*] Terminating {args.address}...")
            terminated = await container.destroy_instance.execute(args.address)
        except LambdaformError as e:
            _fail("Destroy failed", e, verbose)
            return
        print(f"[+] Terminated: {', '.join(terminated)}")
        return

    if args.action == "show":
        try:
            instance = await container.instance_data_source.read(args.instance_id)
        except LambdaformError as e:
            _fail("Lookup failed", e, verbose)
            return
        _print_instance(instance)
        if instance.jupyter_url:
            print(f"  jupyter: {instance.jupyter_url}")
        return

    if args.action == "import":
        try:
            state = await container.import_instance.execute(
                args.address, args.instance_id
            )
        except LambdaformError as e:
            _fail("Import failed", e, verbose)
            return
        print(
            f"[+] Imported {state.id} as {args.address} "
            f"({state.instance_type_name} in {state.region_name})"
        )
        return

    parser.parse_args(["instance", "--help"])


async def _ssh_key_command(parser, args, container, verbose: bool) -> None:
    if args.action == "add":
        try:
            public_key = _read_public_key(args.public_key_file)
            result = await container.apply_ssh_key.execute(
                args.address, SSHKeySpec(name=args.name, public_key=public_key)
            )
        except FileNotFoundError as e:
            print(f"[-] Public key file not found: {e}")
            sys.exit(1)
        except LambdaformError as e:
            _fail("Adding SSH key failed", e, verbose)
            return
        print(f"[+] {args.address}: {result.plan.describe()} -> {result.state.id}")
        return

    if args.action == "refresh":
        stored = container.state_store.load(args.address)
        if stored is None:
            print(f"[-] No tracked SSH key at {args.address}")
            sys.exit(1)
        try:
            state = await container.ssh_key_reconciler.read(SSHKeyState.from_dict(stored))
        except LambdaformError as e:
            _fail("Refresh failed", e, verbose)
            return
        container.state_store.save(args.address, SSH_KEY_KIND, state.id, state.to_dict())
        print(f"[+] {args.address}: {state.name} ({state.id})")
        return

    if args.action == "remove":
        try:
            state = await container.remove_ssh_key.execute(args.address)
        except LambdaformError as e:
            _fail("Removing SSH key failed", e, verbose)
            return
        print(f"[+] Removed SSH key {state.name}")
        return

    if args.action == "list":
        try:
            keys = await container.ssh_keys_data_source.read()
        except LambdaformError as e:
            _fail("Listing SSH keys failed", e, verbose)
            return
        for key in keys:
            print(f"  {key.id}  {key.name}")
        return

    parser.parse_args(["ssh-key", "--help"])


def _read_public_key(path: str) -> str:
    return Path(path).expanduser().read_text().strip()


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()

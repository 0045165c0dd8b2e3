#!/usr/bin/env python
"""
birb Command Line Interface

Entry point for the birb console script.
"""

import sys
import argparse
import logging
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.tree import Tree

from .config import load_settings
from .exceptions import BirbError, ConfigError
from .package.manager import PackageManager
from .package.transaction import TransactionContext, TransactionState

logger = logging.getLogger('BIRB.cli')

console = Console()

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_CANCELLED = 2


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='birb',
        description='birb - source based package manager'
    )
    parser.add_argument('--config', help='Path to birb.yaml', type=str)
    parser.add_argument('-d', '--debug', help='Enable debug logging', action='store_true')
    parser.add_argument('-v', '--version', help='Show version and exit', action='store_true')

    subparsers = parser.add_subparsers(dest='command')

    install = subparsers.add_parser('install', help='Install packages and their dependencies')
    install.add_argument('packages', nargs='+')
    install.add_argument('--force', action='store_true', help='Reinstall packages that are already installed')
    install.add_argument('--overwrite', action='store_true', help='Delete conflicting files instead of aborting')
    install.add_argument('--skip-installed', action='store_true', help='Silently skip installed packages')
    install.add_argument('--test', action='store_true', help='Run package test suites')
    install.add_argument('--download', action='store_true', help='Download missing sources')
    install.add_argument('-y', '--yes', action='store_true', help='Answer yes to ordinary confirmations')

    uninstall = subparsers.add_parser('uninstall', help='Uninstall packages')
    uninstall.add_argument('packages', nargs='+')
    uninstall.add_argument('-y', '--yes', action='store_true', help='Answer yes to ordinary confirmations')

    deps = subparsers.add_parser('deps', help='List the full dependency tree of a package')
    deps.add_argument('package')
    deps.add_argument('--tree', action='store_true', help='Show dependencies as a tree')

    missing = subparsers.add_parser('missing', help='List dependencies that are not installed')
    missing.add_argument('package')

    subparsers.add_parser('list', help='List installed packages')

    is_installed = subparsers.add_parser('is-installed', help='Exit 0 if the package is installed')
    is_installed.add_argument('package')

    subparsers.add_parser('sources', help='List configured repositories')

    return parser.parse_args(args)


def confirm(prompt: str) -> bool:
    return Confirm.ask(prompt, default=False, console=console)


def confirm_protected(name: str) -> bool:
    """Removing a protected package requires typing its name"""
    console.print(f"[bold red]WARNING:[/bold red] {name} is marked as important. "
                  "Removing it can leave the system unusable.")
    answer = Prompt.ask(f"Type [bold]{name}[/bold] to remove it anyway", console=console, default="")
    return answer.strip() == name


def print_results(results) -> int:
    status = EXIT_OK
    for result in results:
        for dep in result.dependencies:
            _print_result(dep, indent="  ")
        _print_result(result)
        if result.state == TransactionState.CANCELLED:
            status = EXIT_CANCELLED
        elif not result.ok:
            status = EXIT_ABORTED
    return status


def _print_result(result, indent: str = ""):
    color = "green" if result.ok else ("yellow" if result.state == TransactionState.CANCELLED else "red")
    console.print(f"{indent}[{color}]{result}[/{color}]", highlight=False)
    if result.conflicts:
        console.print(f"{indent}Conflicting paths:")
        for path in result.conflicts:
            console.print(f"{indent}  {path}", highlight=False)


def _add_tree(branch: Tree, node: Dict[str, Any]):
    for dep in node['dependencies']:
        label = dep['name'] + (" [dim](see above)[/dim]" if dep.get('repeated') else "")
        _add_tree(branch.add(label), dep)


def run_command(parsed_args: argparse.Namespace, manager: PackageManager, settings) -> int:
    command = parsed_args.command

    if command in ('install', 'uninstall'):
        ctx = TransactionContext(
            settings=settings,
            force=getattr(parsed_args, 'force', False),
            overwrite=getattr(parsed_args, 'overwrite', False),
            skip_installed=getattr(parsed_args, 'skip_installed', False),
            run_tests=getattr(parsed_args, 'test', False),
            assume_yes=parsed_args.yes,
            confirm=confirm,
            confirm_protected=confirm_protected,
        )
        if command == 'install':
            results = manager.install(parsed_args.packages, ctx)
        else:
            results = manager.uninstall(parsed_args.packages, ctx)
        return print_results(results)

    if command == 'deps':
        if parsed_args.tree:
            root = manager.dependency_tree(parsed_args.package)
            tree = Tree(root['name'])
            _add_tree(tree, root)
            console.print(tree)
        else:
            for name in manager.dependencies(parsed_args.package):
                console.print(name, highlight=False)
        return EXIT_OK

    if command == 'missing':
        for name in manager.missing(parsed_args.package):
            console.print(name, highlight=False)
        return EXIT_OK

    if command == 'list':
        for name in manager.list_installed():
            console.print(name, highlight=False)
        return EXIT_OK

    if command == 'is-installed':
        return EXIT_OK if manager.is_installed(parsed_args.package) else EXIT_ABORTED

    if command == 'sources':
        table = Table(title="Repositories")
        table.add_column("Name")
        table.add_column("URL")
        table.add_column("Path")
        for source in manager.repositories.sources:
            table.add_row(source.identifier, source.url, source.path)
        console.print(table)
        return EXIT_OK

    return EXIT_CANCELLED


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the birb CLI"""
    parsed_args = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if parsed_args.version:
        from birb import __version__
        print(f"birb version {__version__}")
        return EXIT_OK

    if not parsed_args.command:
        console.print("No command given, see birb --help")
        return EXIT_CANCELLED

    try:
        settings = load_settings(parsed_args.config)
        manager = PackageManager(settings, fetch_sources=getattr(parsed_args, 'download', False))
        return run_command(parsed_args, manager, settings)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}", highlight=False)
        return EXIT_CANCELLED
    except BirbError as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        return EXIT_ABORTED
    except KeyboardInterrupt:
        console.print("\nInterrupted")
        return EXIT_CANCELLED


if __name__ == '__main__':
    sys.exit(main())

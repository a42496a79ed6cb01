"""
Command line entry point for the ORM hook.

This module:
- Reads a YAML configuration file (environment variables expanded).
- Configures colored logging.
- Runs the hook: connect, load model files, register models.
- Prints a header and the registered models, or the error in red.
"""
import argparse
import asyncio
import sys

from colorama import Fore, Style

from orm_hook.errors import HookError
from orm_hook.hook import Hook
from orm_hook.infrastructure.config import load_config
from orm_hook.infrastructure.logging_utils import configure_logging
from orm_hook.infrastructure.state import App

"""
Load the configured models and report them.

Returns:
    int: 0 on success, 1 if any step failed.
"""
def main(argv=None):
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, HookError) as exc:
        error_msg(f'Could not read {args.config}: {exc}')
        return 1

    configure_logging(args.log_level or str((config.get('log') or {}).get('level', 'info')))

    if args.models:
        config.setdefault('paths', {})['models'] = args.models

    hook = Hook(App(config=config))
    print_header()

    try:
        hook.configure()
        models = asyncio.run(hook.load())
    except HookError as exc:
        error_msg(str(exc))
        return 1
    except Exception as exc:
        # Raised by a model file or by MongoEngine itself.
        error_msg(f'{type(exc).__name__}: {exc}')
        return 1

    for identity, model in sorted(models.items()):
        fields = ', '.join(name for name in model._fields if name != 'id')
        print(f'{Fore.LIGHTGREEN_EX}{model.global_id:<20}{Style.RESET_ALL} {identity:<20} {fields}')
    print()
    success_msg(f'{len(models)} model(s) ready.')
    return 0


def parse_args(argv):
    parser = argparse.ArgumentParser(prog='orm-hook', description='Load model files as MongoEngine documents.')
    parser.add_argument('config', help='YAML configuration file')
    parser.add_argument('--models', help='override paths.models from the configuration')
    parser.add_argument('--log-level', help='override log.level from the configuration')
    return parser.parse_args(argv)


def print_header():
    print(Fore.WHITE + '****************  ORM HOOK: MONGOENGINE  ****************')
    print()


def success_msg(text):
    print(Fore.LIGHTGREEN_EX + text + Style.RESET_ALL)


def error_msg(text):
    print(Fore.LIGHTRED_EX + text + Style.RESET_ALL)


# Standard Python entry-point guard.
if __name__ == '__main__':
    sys.exit(main())

#!/usr/bin/env python3
"""prp CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from prpkit.lib.config import ConfigError, load_config
from prpkit.lib.constants import DEFAULT_CONTEXT_FILE, DEFAULT_DYNAMIC_PROMPT_FILE, DEFAULT_PROMPT_FILE
from prpkit.lib.constants import EXIT_INTERRUPTED, EXIT_USAGE
from prpkit.lib.prp import VALID_STATES
from prpkit.lib.reports import VALID_FORMATS
from prpkit.lib import workflows as workflows_lib
from prpkit.commands import act as cmd_act_module
from prpkit.commands import cache as cmd_cache_module
from prpkit.commands import docker as cmd_docker_module
from prpkit.commands import extract as cmd_extract_module
from prpkit.commands import github as cmd_github_module
from prpkit.commands import prp as cmd_prp_module
from prpkit.commands import report as cmd_report_module
from prpkit.commands import setup as cmd_setup_module
from prpkit.commands import test as cmd_test_module
from prpkit.commands import workflows as cmd_workflows_module

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


def get_project_dir(args) -> Path:
    return Path(args.project_dir).resolve() if args.project_dir else Path.cwd()


def with_config(func):
    """Adapt a cmd_x(args, project_dir, config) function to an argparse handler."""
    def handler(args):
        project_dir = get_project_dir(args)
        try:
            config = load_config(project_dir)
        except (ConfigError, ValueError) as e:
            print(f"ERROR: Invalid configuration: {e}")
            return EXIT_USAGE
        return func(args, project_dir, config)
    handler.__name__ = func.__name__
    return handler


def _add_repo(p):
    p.add_argument('--repo', help='Repository root (default: project directory)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='prp', description='PRP automation and test harness')
    parser.add_argument('--project-dir', '-C', help='Project directory (default: current directory)')
    parser.add_argument('--verbose', '-v', dest='debug', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command')

    # prp extract
    p_extract = subparsers.add_parser('extract', help='Extract PRP from a comment, branch and prepare prompt')
    body = p_extract.add_mutually_exclusive_group()
    body.add_argument('--comment-body', help='Comment text containing a PRPs/... path')
    body.add_argument('--comment-file', help='File containing the comment text')
    p_extract.add_argument('--issue-number', type=int, help='Issue the comment belongs to')
    p_extract.add_argument('--create-branch', action=argparse.BooleanOptionalAction, default=True,
                           help='Create the implementation branch')
    p_extract.add_argument('--move-to-done', action=argparse.BooleanOptionalAction, default=True,
                           help='Move the PRP to the done directory')
    p_extract.add_argument('--prompt-file', default=DEFAULT_PROMPT_FILE, help='Where to write the prompt')
    _add_repo(p_extract)
    p_extract.set_defaults(func=with_config(cmd_extract_module.cmd_extract))

    # prp github ...
    p_github = subparsers.add_parser('github', help='GitHub operations')
    github_sub = p_github.add_subparsers(dest='github_cmd', required=True)

    p_pr = github_sub.add_parser('create-pr', help='Create a pull request')
    p_pr.add_argument('--title', required=True)
    p_pr.add_argument('--body', default='')
    p_pr.add_argument('--head', help='Head branch (default: current branch)')
    p_pr.add_argument('--base', default='main', help='Base branch')
    p_pr.add_argument('--draft', action='store_true', help='Create as draft')
    p_pr.add_argument('--push', action='store_true', help='Push the head branch first')
    _add_repo(p_pr)
    p_pr.set_defaults(func=with_config(cmd_github_module.cmd_create_pr))

    p_comment = github_sub.add_parser('comment-issue', help='Comment on an issue or PR')
    p_comment.add_argument('--issue-number', type=int, required=True)
    comment_body = p_comment.add_mutually_exclusive_group()
    comment_body.add_argument('--body')
    comment_body.add_argument('--body-file')
    _add_repo(p_comment)
    p_comment.set_defaults(func=with_config(cmd_github_module.cmd_comment_issue))

    p_bot = github_sub.add_parser('check-bot-status', help='Decide whether the bot should respond')
    p_bot.add_argument('--issue-number', type=int, required=True)
    p_bot.add_argument('--bot-username', help='Bot login (default: BOT_USERNAME)')
    p_bot.add_argument('--context-file', default=DEFAULT_CONTEXT_FILE)
    p_bot.add_argument('--prompt-file', default=DEFAULT_DYNAMIC_PROMPT_FILE)
    _add_repo(p_bot)
    p_bot.set_defaults(func=with_config(cmd_github_module.cmd_check_bot_status))

    # prp setup
    p_setup = subparsers.add_parser('setup', help='Validate tokens and configure git')
    p_setup.add_argument('--claude-token', help='Claude OAuth token (default: $CLAUDE_CODE_OAUTH_TOKEN)')
    p_setup.add_argument('--github-token', help='GitHub token (default: $GITHUB_TOKEN)')
    p_setup.add_argument('--git-user-name')
    p_setup.add_argument('--git-user-email')
    p_setup.add_argument('--configure-git', action=argparse.BooleanOptionalAction, default=True)
    p_setup.add_argument('--git-scope', default='--global', choices=['--global', '--local'])
    _add_repo(p_setup)
    p_setup.set_defaults(func=with_config(cmd_setup_module.cmd_setup))

    # prp cache ...
    p_cache = subparsers.add_parser('cache', help='Manage the test-result cache')
    cache_sub = p_cache.add_subparsers(dest='cache_cmd', required=True)

    p_cache_init = cache_sub.add_parser('init', help='Create the cache layout')
    p_cache_init.set_defaults(func=with_config(cmd_cache_module.cmd_cache_init))

    p_cache_check = cache_sub.add_parser('check', help='Print CACHED or NOT_CACHED')
    p_cache_check.add_argument('test_file')
    p_cache_check.set_defaults(func=with_config(cmd_cache_module.cmd_cache_check))

    p_cache_get = cache_sub.add_parser('get', help='Print cached TAP output')
    p_cache_get.add_argument('test_file')
    p_cache_get.set_defaults(func=with_config(cmd_cache_module.cmd_cache_get))

    p_cache_save = cache_sub.add_parser('save', help='Store TAP output for a test file')
    p_cache_save.add_argument('test_file')
    p_cache_save.add_argument('output_file')
    p_cache_save.add_argument('exit_code', type=int, nargs='?', default=0)
    p_cache_save.add_argument('--duration', type=float, default=0.0)
    p_cache_save.set_defaults(func=with_config(cmd_cache_module.cmd_cache_save))

    p_cache_clear = cache_sub.add_parser('clear', help='Remove cached data')
    p_cache_clear.add_argument('kind', nargs='?', default='all', help='all, results, docker or deps')
    p_cache_clear.set_defaults(func=with_config(cmd_cache_module.cmd_cache_clear))

    p_cache_stats = cache_sub.add_parser('stats', help='Show cache statistics')
    p_cache_stats.set_defaults(func=with_config(cmd_cache_module.cmd_cache_stats))

    # prp test run
    p_test = subparsers.add_parser('test', help='Run BATS tests')
    test_sub = p_test.add_subparsers(dest='test_cmd', required=True)
    p_test_run = test_sub.add_parser('run', help='Run tests through the result cache')
    p_test_run.add_argument('target', nargs='?', help='Test file or directory (default: tests)')
    p_test_run.add_argument('--jobs', '-j', type=int, help='Parallel jobs (default: MAX_PARALLEL_JOBS)')
    p_test_run.add_argument('--timeout', type=float, help='Per-file timeout in seconds')
    p_test_run.add_argument('--format', default='all', choices=VALID_FORMATS)
    p_test_run.set_defaults(func=with_config(cmd_test_module.cmd_test_run))

    # prp report
    p_report = subparsers.add_parser('report', help='Format TAP results')
    p_report.add_argument('tap_file', nargs='?', help='TAP file (default: reports/test-results.tap)')
    p_report.add_argument('--format', '-f', default='all', help=f"One of: {', '.join(VALID_FORMATS)}")
    p_report.add_argument('--output-dir', '-o', help='Report directory (default: REPORT_DIR)')
    p_report.set_defaults(func=with_config(cmd_report_module.cmd_report))

    # prp docker <command>
    p_docker = subparsers.add_parser('docker', help='Containerized test harness')
    p_docker.add_argument('docker_cmd', nargs='?', default='test', choices=cmd_docker_module.DOCKER_COMMANDS)
    p_docker.add_argument('service', nargs='?', help='Service name (logs only)')
    p_docker.add_argument('--verbose', dest='verbose', action='store_true', help='Stream build and compose output')
    p_docker.add_argument('--detach', '-d', action='store_true', help='Run in detached mode')
    p_docker.add_argument('--no-cache', action='store_true', help='Build without using cache')
    p_docker.add_argument('--parallel', action='store_true', help='Run test services in parallel')
    p_docker.set_defaults(func=with_config(cmd_docker_module.cmd_docker))

    # prp act -- ...
    p_act = subparsers.add_parser('act', help='Run act with platform auto-detection')
    p_act.add_argument('act_args', nargs=argparse.REMAINDER, help='Arguments passed to act')
    p_act.set_defaults(func=with_config(cmd_act_module.cmd_act))

    # prp workflows ...
    p_wf = subparsers.add_parser('workflows', help='Workflow file helpers')
    wf_sub = p_wf.add_subparsers(dest='workflows_cmd', required=True)

    p_wf_validate = wf_sub.add_parser('validate', help='Check workflow YAML parses')
    p_wf_validate.add_argument('paths', nargs='*', help='Files (default: workflows and action.yml files)')
    p_wf_validate.set_defaults(func=with_config(cmd_workflows_module.cmd_workflows_validate))

    p_wf_pin = wf_sub.add_parser('pin', help='Pin action references to commit SHAs')
    p_wf_pin.add_argument('paths', nargs='*', help='Files (default: workflows and action.yml files)')
    p_wf_pin.add_argument('--dry-run', action='store_true', help='Report without rewriting')
    p_wf_pin.set_defaults(func=with_config(cmd_workflows_module.cmd_workflows_pin))

    p_wf_runners = wf_sub.add_parser('migrate-runners', help='Move runs-on to BuildJet runners')
    p_wf_runners.add_argument('paths', nargs='*', help='Files (default: .github/workflows)')
    p_wf_runners.add_argument('--map', action='append', metavar='OLD=NEW',
                              help='Extra or overriding runner mapping (repeatable)')
    p_wf_runners.add_argument('--dry-run', action='store_true', help='Report without rewriting')
    p_wf_runners.set_defaults(func=with_config(cmd_workflows_module.cmd_workflows_migrate_runners))

    p_wf_migrate = wf_sub.add_parser('migrate', help='Replace workflows with reusable-workflow wrappers')
    p_wf_migrate.add_argument('--library', default=workflows_lib.DEFAULT_LIBRARY,
                              help='owner/repo hosting the reusable workflows')
    p_wf_migrate.add_argument('--version', default=workflows_lib.DEFAULT_LIBRARY_VERSION,
                              help='Ref of the reusable workflows')
    _add_repo(p_wf_migrate)
    p_wf_migrate.set_defaults(func=with_config(cmd_workflows_module.cmd_workflows_migrate))

    # prp prp list
    p_prp = subparsers.add_parser('prp', help='PRP files')
    prp_sub = p_prp.add_subparsers(dest='prp_cmd', required=True)
    p_prp_list = prp_sub.add_parser('list', help='List PRPs by state')
    p_prp_list.add_argument('--state', choices=VALID_STATES)
    p_prp_list.set_defaults(func=with_config(cmd_prp_module.cmd_prp_list))

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
    )

    if not getattr(args, 'func', None):
        parser.print_help()
        return EXIT_USAGE

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())

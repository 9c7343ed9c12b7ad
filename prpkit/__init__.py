"""prpkit: PRP automation and test harness for GitHub Actions workflows.

Package structure:
- cli.py: `prp` entry point and argument parsing
- commands/: one module per CLI command group
- lib/: config, errors, Actions protocol, PRP files, GitHub, TAP and reports
- git/: git subprocess wrappers
- workflow/: PRP lifecycle state machine
- runner/: BATS execution and the checksum-keyed result cache
- docker/: Docker Compose test harness and live monitor
"""

"""
Structurizr DSL export.

Runs ``structurizr-cli export --format mermaid`` on the workspace in
``<root>/_dsl/`` and writes the ``.mmd`` views to ``<root>/diagrams/``, where
documents can link them like any other Mermaid file. The CLI runs either
locally or inside the ``structurizr/cli`` docker image.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from .config import DSL_CLI_CHOICES, BuildConfig, is_unset
from .files import PathLike, absolute
from .log import announce

logger = logging.getLogger(__name__)

DSL_FOLDER = '_dsl'
DIAGRAMS_FOLDER = 'diagrams'
DOCKER_IMAGE = 'structurizr/cli'
CONTAINER_WORKDIR = '/root/data'


def workspace_path(config: BuildConfig) -> Path:
    return Path(config.root_folder) / DSL_FOLDER / config.workspace_dsl


def output_path(config: BuildConfig) -> Path:
    return Path(config.root_folder) / DIAGRAMS_FOLDER


class DslExporter:
    """Exports the views of a Structurizr workspace as Mermaid files."""

    def __init__(self, cli_executable: str = 'structurizr-cli', docker_executable: str = 'docker'):
        self.cli_executable = cli_executable
        self.docker_executable = docker_executable

    def _export_args(self, workspace: str, output: str) -> List[str]:
        return ['export', '-workspace', workspace, '--format', 'mermaid', '--output', output]

    def _container_path(self, path: PathLike) -> Optional[str]:
        """``path`` relative to the working directory mounted into the container."""
        relative = Path(os.path.relpath(absolute(path), Path.cwd()))
        if relative.parts and relative.parts[0] == '..':
            return None
        return relative.as_posix()

    def commands(self, config: BuildConfig) -> Optional[List[List[str]]]:
        """The command lines to run, or None when they cannot be built."""
        workspace = workspace_path(config)
        output = output_path(config)
        if config.dsl_cli == 'structurizr-cli':
            return [[self.cli_executable] + self._export_args(str(workspace), str(output))]

        container_workspace = self._container_path(workspace)
        container_output = self._container_path(output)
        if container_workspace is None or container_output is None:
            logger.error(f"The docker export mounts {Path.cwd()}; {workspace} and {output} must be inside it")
            return None
        return [
            [self.docker_executable, 'pull', f"{DOCKER_IMAGE}:latest"],
            [self.docker_executable, 'run', '--rm', '-v', f"{Path.cwd()}:{CONTAINER_WORKDIR}",
             '-w', CONTAINER_WORKDIR, DOCKER_IMAGE] + self._export_args(container_workspace, container_output),
        ]

    def export(self, config: BuildConfig) -> bool:
        """Run the export. Failures are logged and reported as False."""
        if config.dsl_cli not in DSL_CLI_CHOICES:
            logger.error(f"Unknown dslCli setting {config.dsl_cli!r}. "
                         f"Please set it to {' or '.join(DSL_CLI_CHOICES)}.")
            return False
        if is_unset(config.root_folder) or is_unset(config.workspace_dsl):
            logger.error('Please run `config` before attempting to run `dsl`.')
            return False

        workspace = workspace_path(config)
        if not workspace.is_file():
            logger.error(f"Workspace file not found: {workspace}")
            return False

        commands = self.commands(config)
        if commands is None:
            return False

        announce(f"Using {'Dockerized ' if config.dsl_cli == 'docker' else 'local '}structurizr-cli...")
        for command in commands:
            logger.info(f"Running {' '.join(command)}")
            try:
                result = subprocess.run(command)
            except Exception as error:
                logger.error(f"Failed to execute DSL command {command[0]}: {error}")
                return False
            if result.returncode != 0:
                logger.error(f"DSL command {' '.join(command[:2])} exited with {result.returncode}")
                return False

        announce(f"Exported Mermaid diagrams to ./{output_path(config)}")
        return True

"""Command lines for the .NET toolchain that builds and measures submissions."""

from pathlib import Path
from typing import Optional

from royale.config import Settings, get_settings

# Keeps the SDK quiet so the test summary is all that reaches stdout.
TOOL_ENV = {
    "DOTNET_CLI_CONTEXT_VERBOSE": "false",
    "DOTNET_CLI_TELEMETRY_OPTOUT": "1",
    "DOTNET_NOLOGO": "1",
}


class Toolchain:
    """Builds argv lists for every external tool invocation."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.dotnet = self.settings.dotnet_executable

    def restore(self, project_dir: Path) -> list[str]:
        return [self.dotnet, "restore", str(project_dir)]

    def build(self, project_dir: Path) -> list[str]:
        return [self.dotnet, "build", str(project_dir)]

    def test(self, project_dir: Path, results_dir: Path) -> list[str]:
        return [
            self.dotnet,
            "test",
            str(project_dir),
            "--no-build",
            "--logger",
            "trx",
            "--results-directory",
            str(results_dir),
        ]

    def coverage_test(self, project_dir: Path, results_dir: Path, log_file_name: str) -> list[str]:
        return [
            self.dotnet,
            "test",
            str(project_dir),
            "--no-build",
            "--collect",
            "XPlat Code Coverage",
            "--logger",
            f"trx;LogFileName={log_file_name}",
            "--results-directory",
            str(results_dir),
        ]

    def new_solution(self, name: str) -> list[str]:
        return [self.dotnet, "new", "sln", "-n", name]

    def add_to_solution(self, solution_path: Path, project_file: Path) -> list[str]:
        return [self.dotnet, "sln", str(solution_path), "add", str(project_file)]

    def mutation(self, solution_path: Path, test_project_file: Path, output_dir: Path) -> list[str]:
        return [
            self.dotnet,
            "stryker",
            "--solution",
            str(solution_path),
            "--test-project",
            str(test_project_file),
            "--reporter",
            "json",
            "--output",
            str(output_dir),
        ]

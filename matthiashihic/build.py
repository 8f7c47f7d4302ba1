"""
Build step for generated programs

Stages generated program text in a temporary project directory together
with a manifest of what the program needs at run time, optionally vendors
the third-party requirements with pip, and packs the directory into a
single executable zip application.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import sys
import tempfile
import zipapp
from dataclasses import asdict, dataclass, field
from pathlib import Path

from .exceptions import BuildError
from .models import GeneratedProgram

logger = logging.getLogger(__name__)

ENTRY_MODULE = "__main__.py"
REQUIREMENTS_FILE = "requirements.txt"
MANIFEST_FILE = "manifest.json"
HTTPX_REQUIREMENT = "httpx>=0.27"


@dataclass(frozen=True)
class Capability:
    """One external capability a generated program relies on"""

    name: str
    module: str
    purpose: str
    requirement: str | None = None  # None for standard library modules


DEFAULT_CAPABILITIES: tuple[Capability, ...] = (
    Capability("http_client", "httpx", "HTTP client with streaming responses", HTTPX_REQUIREMENT),
    Capability("json", "json", "JSON value representation"),
    Capability("async_runtime", "asyncio", "asynchronous runtime"),
    Capability("byte_stream", "httpx", "async iteration over response bytes", HTTPX_REQUIREMENT),
)


@dataclass
class BuildManifest:
    """
    What the build step needs to know about a generated program
    """

    name: str = "matthiashihic_exec"
    version: str = "0.1.0"
    entry_module: str = ENTRY_MODULE
    capabilities: tuple[Capability, ...] = field(default=DEFAULT_CAPABILITIES)

    def requirements(self) -> list[str]:
        """Third-party distributions, deduplicated in declaration order"""
        return list(
            dict.fromkeys(c.requirement for c in self.capabilities if c.requirement is not None)
        )

    def requirements_text(self) -> str:
        return "".join(f"{req}\n" for req in self.requirements())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["requirements"] = self.requirements()
        return data


def make_build_dir(prefix: str = "matthiashihic") -> Path:
    """Create a fresh, uniquely named staging directory"""
    return Path(tempfile.mkdtemp(prefix=f"{prefix}-{os.getpid()}-"))


def stage_project(build_dir: Path, program: GeneratedProgram, manifest: BuildManifest) -> Path:
    """
    Write the program and its manifest into the staging directory

    Returns:
        Path of the written entry module
    """
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
        entry = build_dir / manifest.entry_module
        entry.write_text(program.source, encoding="utf-8")
        (build_dir / REQUIREMENTS_FILE).write_text(manifest.requirements_text(), encoding="utf-8")
        (build_dir / MANIFEST_FILE).write_text(
            json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8"
        )
    except OSError as e:
        raise BuildError(f"Failed to stage build directory {build_dir}: {e}", stage="stage", cause=e) from e

    logger.debug("Staged %s in %s", manifest.entry_module, build_dir)
    return entry


def vendor_requirements(
    build_dir: Path, manifest: BuildManifest, pip_args: list[str] | None = None
) -> None:
    """Install the manifest's requirements into the staging directory with pip"""
    requirements = manifest.requirements()
    if not requirements:
        return

    cmd = [
        sys.executable,
        "-m",
        "pip",
        "install",
        "--quiet",
        "--disable-pip-version-check",
        "--target",
        str(build_dir),
        "-r",
        str(build_dir / REQUIREMENTS_FILE),
        *(pip_args or []),
    ]
    logger.info("Vendoring %s ...", ", ".join(requirements))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise BuildError(f"Failed to spawn pip: {e}", stage="vendor", cause=e) from e

    if result.returncode != 0:
        raise BuildError(
            f"pip exited with status {result.returncode}: {result.stderr.strip()}",
            stage="vendor",
        )


def create_executable(build_dir: Path, output: Path, interpreter: str) -> Path:
    """Pack the staging directory into an executable zip application"""
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        zipapp.create_archive(build_dir, target=output, interpreter=interpreter)
        output.chmod(0o755)
    except (OSError, zipapp.ZipAppError) as e:
        raise BuildError(f"Failed to write executable {output}: {e}", stage="archive", cause=e) from e
    return output


def build_executable(
    program: GeneratedProgram,
    output: str | Path,
    *,
    bundle: bool = True,
    interpreter: str = "/usr/bin/env python3",
    manifest: BuildManifest | None = None,
    pip_args: list[str] | None = None,
    keep_build_dir: bool = False,
    build_dir_prefix: str = "matthiashihic",
) -> Path:
    """
    Build a runnable executable from generated program text

    Args:
        program: Generated program
        output: Path of the executable to write
        bundle: Vendor third-party requirements into the executable; when
            False the interpreter's installed packages are used at run time
        interpreter: Shebang interpreter line
        manifest: Build manifest; the default declares httpx, json and asyncio
        pip_args: Extra arguments passed to pip when bundling
        keep_build_dir: Leave the staging directory behind for inspection
        build_dir_prefix: Prefix of the staging directory name

    Returns:
        Path of the written executable

    Raises:
        BuildError: If staging, vendoring or archiving fails
    """
    manifest = manifest or BuildManifest()
    output_path = Path(output)
    build_dir = make_build_dir(build_dir_prefix)

    try:
        stage_project(build_dir, program, manifest)
        if bundle:
            vendor_requirements(build_dir, manifest, pip_args)
        return create_executable(build_dir, output_path, interpreter)
    finally:
        if keep_build_dir:
            logger.info("Build directory kept at %s", build_dir)
        else:
            shutil.rmtree(build_dir, ignore_errors=True)

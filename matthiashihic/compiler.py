"""
Compiler module for matthiashihic

Coordinates the pipeline: source text -> parser -> program generator, and
optionally hands the generated program to the build step.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .build import build_executable
from .codegen import ProgramGenerator
from .config import Config
from .models import GeneratedProgram, ParseResult
from .parser import SourceParser

logger = logging.getLogger(__name__)


class Compiler:
    """
    Central orchestrator for a compilation

    Parsing always completes (or raises) before anything is generated, so a
    grammar error never yields a partial program.
    """

    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        self.parser = SourceParser()
        self.generator = ProgramGenerator.from_config(self.config.compiler)

    def parse(self, source: str) -> ParseResult:
        return self.parser.parse(source)

    def translate(
        self,
        source: str,
        api_key: str | None = None,
        model: str | None = None,
    ) -> GeneratedProgram:
        """
        Translate source text into a generated program

        Args:
            source: .matthiashihic source text
            api_key: Credential to embed; falls back to the configured one
            model: Model identifier; falls back to the configured default

        Raises:
            ParsingError: On grammar errors
        """
        result = self.parse(source)
        key = api_key if api_key is not None else self.config.compiler.api_key
        model_name = model or self.config.compiler.default_model

        logger.debug(
            "Translating %d statement(s) for model %s", result.statement_count, model_name
        )
        return self.generator.generate(key, model_name, result.pseudocode, result.required_args)

    def compile_file(
        self,
        source_path: str | Path,
        output: str | Path,
        api_key: str | None = None,
        model: str | None = None,
        bundle: bool | None = None,
    ) -> Path:
        """
        Read, translate and build a source file into an executable

        Raises:
            OSError: If the source file cannot be read
            ParsingError: On grammar errors
            BuildError: If the build step fails
        """
        source = Path(source_path).read_text(encoding="utf-8")
        program = self.translate(source, api_key=api_key, model=model)
        return self.build(program, output, bundle=bundle)

    def build(
        self, program: GeneratedProgram, output: str | Path, bundle: bool | None = None
    ) -> Path:
        """Hand a generated program to the build step using the build config"""
        build_cfg = self.config.build
        return build_executable(
            program,
            output,
            bundle=build_cfg.bundle if bundle is None else bundle,
            interpreter=build_cfg.interpreter,
            pip_args=build_cfg.pip_args,
            keep_build_dir=build_cfg.keep_build_dir,
            build_dir_prefix=build_cfg.build_dir_prefix,
        )

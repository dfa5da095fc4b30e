#!/usr/bin/env python3

"""
Main pipeline class for gene model conversion.

Runs the two passes (parse/index, then ordered conversion) and writes the
resulting GFF3 file.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import ConverterConfig
from .exceptions import ConverterError, OutputError
from .parsers import FeatureFileParser, load_id_list
from .processors import ConversionEngine, ConversionStats, build_filter_policy
from .writers import GFF3Writer
from ..utils.performance_monitor import CONVERSION, INDEXING, WRITING, PerformanceMonitor
from ..utils.progress import ProgressReporter


@dataclass
class ConversionResult:
    """Outcome of a completed run."""
    output_path: str
    stats: ConversionStats
    lines_written: int = 0
    warnings: List[str] = field(default_factory=list)


class GeneConversionPipeline:
    """Coordinates parsing, conversion and output for one input file."""

    def __init__(self, config: ConverterConfig, reporter: Optional[ProgressReporter] = None):
        self.config = config
        self.reporter = reporter or ProgressReporter(
            verbose=config.verbose, interval=config.progress_interval
        )
        self.monitor = PerformanceMonitor(
            memory_limit_mb=config.memory_limit_mb,
            enabled=config.enable_memory_monitoring,
        )
        self.result: Optional[ConversionResult] = None
        self._previous_level = logging.NOTSET

    def run(self) -> bool:
        """
        Run the complete conversion.

        Returns:
            True if the output file was written
        """
        try:
            self.execute()
            return True
        except ConverterError as e:
            logging.error(f"Conversion failed: {e}")
            logging.debug("Full traceback:", exc_info=True)
            return False

    def execute(self) -> ConversionResult:
        """Run the conversion, raising on fatal errors."""
        self.config.check_required()
        output_path = self.config.resolve_output_path()
        self._check_output_destination(output_path)

        log_handler = None
        if self.config.debug_mode:
            log_handler = self._setup_pipeline_logging(output_path)
        try:
            return self._execute(output_path)
        finally:
            if log_handler is not None:
                self._teardown_pipeline_logging(log_handler)

    def _execute(self, output_path: str) -> ConversionResult:
        logging.info(f"Input file: {self.config.input_path}")
        logging.info(f"Accepted sources: {', '.join(self.config.sources)}")
        if self.config.skip_sources:
            logging.info(f"Skipped sources: {', '.join(self.config.skip_sources)}")
        logging.info(f"Output file: {output_path}")

        allowed_ids = None
        if self.config.id_list_path:
            allowed_ids = load_id_list(self.config.id_list_path)

        with self.monitor.track(INDEXING):
            parser = FeatureFileParser(self.config.input_path, self.reporter)
            store, index, graph = parser.parse(self.config.skip_sources)
            self.monitor.count(len(store))

        with self.monitor.track(CONVERSION):
            filters = build_filter_policy(self.config.sources, allowed_ids,
                                          self.config.keep_unconverted)
            engine = ConversionEngine(store, index, graph, filters, self.reporter)
            lines = engine.run()
            self.monitor.count(index.record_count)

        with self.monitor.track(WRITING, unit="lines"):
            written = GFF3Writer(output_path).write(lines, store.directives)
            self.monitor.count(written)

        self.result = ConversionResult(
            output_path=output_path,
            stats=engine.stats,
            lines_written=written,
            warnings=list(self.reporter.warnings),
        )
        self._log_summary(self.result)
        self.monitor.log_report()
        return self.result

    def _check_output_destination(self, output_path: str) -> None:
        directory = os.path.dirname(os.path.abspath(output_path))
        if not os.path.isdir(directory):
            raise OutputError("Output directory does not exist", output_path)
        if not os.access(directory, os.W_OK):
            raise OutputError("Output directory is not writable", output_path)

    def _setup_pipeline_logging(self, output_path: str) -> logging.Handler:
        """Write a debug log next to the output file."""
        log_file = Path(output_path).with_suffix('.log')

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        ))

        root_logger = logging.getLogger()
        self._previous_level = root_logger.level
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)
        return file_handler

    def _teardown_pipeline_logging(self, file_handler: logging.Handler) -> None:
        root_logger = logging.getLogger()
        root_logger.removeHandler(file_handler)
        root_logger.setLevel(self._previous_level)
        file_handler.close()

    def _log_summary(self, result: ConversionResult) -> None:
        stats = result.stats
        logging.info(f"Created {stats.genes_created} genes and "
                     f"{stats.features_created} gene-model features")
        logging.info(f"Emitted {stats.records_emitted} input records, "
                     f"dropped {stats.records_dropped}")
        if result.warnings:
            logging.info(f"{len(result.warnings)} warnings reported")

#!/usr/bin/env python3

"""
Gene Model Converter

Rebuilds the ID/Parent hierarchy of a GFF3 annotation and rewrites
alignment features (match/match_part) into gene, mRNA, exon and CDS
records, emitting a GFF3 file in a deterministic order.

Modules:
- core: Data structures, parsing, conversion, output and configuration
- utils: Progress reporting and performance monitoring
- tests: Test suite
"""

__version__ = "1.0.0"
__author__ = "Gene Model Converter Team"

# Import main components for easy access
from .core.data_structures import (
    FeatureRecord, RecordStore, PositionIndex, LineageGraph,
    TYPE_EQUIVALENCE, TYPE_PRIORITY
)
from .core.exceptions import (
    ConverterError, ConfigurationError, ParseError, RecordError,
    OutputError, MemoryLimitError
)
from .core.config import ConverterConfig, load_config
from .core.parsers import parse, FeatureFileParser, load_id_list
from .core.processors import ConversionEngine, FilterPolicy, ConversionStats, convert
from .core.pipeline import GeneConversionPipeline, ConversionResult
from .utils.progress import ProgressReporter

__all__ = [
    # Main pipeline
    'GeneConversionPipeline', 'ConversionResult',
    # Data structures
    'FeatureRecord', 'RecordStore', 'PositionIndex', 'LineageGraph',
    'TYPE_EQUIVALENCE', 'TYPE_PRIORITY',
    # Parsing and conversion
    'parse', 'FeatureFileParser', 'load_id_list',
    'ConversionEngine', 'FilterPolicy', 'ConversionStats', 'convert',
    # Exceptions
    'ConverterError', 'ConfigurationError', 'ParseError', 'RecordError',
    'OutputError', 'MemoryLimitError',
    # Configuration and reporting
    'ConverterConfig', 'load_config', 'ProgressReporter'
]

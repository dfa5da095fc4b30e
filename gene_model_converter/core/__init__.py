#!/usr/bin/env python3

"""
Core module for the gene model converter.

Contains the record store and indexes, exception types, configuration,
parsing, conversion and output components.
"""

from .data_structures import FeatureRecord, RecordStore, PositionIndex, LineageGraph
from .exceptions import (
    ConverterError, ConfigurationError, ParseError, RecordError,
    OutputError, MemoryLimitError
)
from .config import ConverterConfig, load_config

__all__ = [
    'FeatureRecord', 'RecordStore', 'PositionIndex', 'LineageGraph',
    'ConverterError', 'ConfigurationError', 'ParseError', 'RecordError',
    'OutputError', 'MemoryLimitError',
    'ConverterConfig', 'load_config'
]

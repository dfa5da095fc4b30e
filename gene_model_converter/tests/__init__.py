#!/usr/bin/env python3

"""
Test suite for the gene model converter.

Unit tests covering:
- Record store, position index and lineage graph
- Configuration management and validation
- GFF3 parsing and its recoverable errors
- Alignment to gene-model conversion, ordering and phase
- Output rendering, the pipeline and the command line
"""

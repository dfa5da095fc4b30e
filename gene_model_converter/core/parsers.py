#!/usr/bin/env python3

"""
GFF3 parsing for the gene model converter.

A single pass over the input fills the record store, the position index
and the lineage graph. Parent references are resolved once the whole file
has been read.
"""

import logging
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from .data_structures import FeatureRecord, LineageGraph, PositionIndex, RecordStore
from .exceptions import ParseError, RecordError
from ..utils.progress import ProgressReporter

GFF3_COLUMNS = 9
FASTA_DIRECTIVE = "##fasta"

ParseResult = Tuple[RecordStore, PositionIndex, LineageGraph]


def parse_attributes(attr_string: str, reporter: Optional[ProgressReporter] = None,
                     line_number: int = 0) -> Dict[str, str]:
    """Parse a GFF3 attribute column into an ordered dictionary.

    Pieces without '=' or with an empty key are skipped.
    """
    attributes = {}
    for piece in attr_string.split(';'):
        if not piece.strip():
            continue
        if '=' not in piece:
            if reporter:
                reporter.warning(f"Skipping malformed attribute '{piece.strip()}'", line_number)
            continue
        key, value = piece.split('=', 1)
        key = key.strip()
        if not key:
            if reporter:
                reporter.warning(f"Skipping attribute with empty key '{piece.strip()}'", line_number)
            continue
        attributes[key] = value.strip()
    return attributes


def parse_feature_line(line: str, line_id: int, line_number: int = 0,
                       reporter: Optional[ProgressReporter] = None) -> FeatureRecord:
    """Split one annotation line into a FeatureRecord."""
    parts = line.rstrip('\r\n').split('\t')
    if len(parts) != GFF3_COLUMNS:
        raise RecordError(f"Expected {GFF3_COLUMNS} tab-delimited fields, found {len(parts)}",
                          line_number)

    seq_id, source, feature, start, end, score, strand, phase, attributes = parts
    return FeatureRecord(
        line_id=line_id,
        seq_id=seq_id,
        source=source,
        type=feature,
        start=start.strip(),
        end=end.strip(),
        score=score,
        strand=strand,
        phase=phase,
        attributes=parse_attributes(attributes, reporter, line_number),
        line_number=line_number,
    )


def is_sequence_section(line: str) -> bool:
    """True for the marker that starts an embedded FASTA section."""
    return line.strip().lower() == FASTA_DIRECTIVE or line.startswith('>')


def parse(stream: Iterable[str], skip_sources: Iterable[str] = (),
          reporter: Optional[ProgressReporter] = None) -> ParseResult:
    """Build the record store, position index and lineage graph in one pass."""
    reporter = reporter or ProgressReporter()
    skipped = frozenset(skip_sources)

    store = RecordStore()
    index = PositionIndex()
    graph = LineageGraph()

    for line_number, line in enumerate(stream, 1):
        line = line.rstrip('\r\n')
        if not line.strip():
            continue

        if is_sequence_section(line):
            reporter.debug(f"Sequence section starts at line {line_number}, ignoring the rest")
            break

        if line.startswith('#'):
            store.add_directive(line)
            continue

        try:
            record = parse_feature_line(line, store.next_line_id, line_number, reporter)
        except RecordError as e:
            reporter.warning(f"Dropping malformed record: {e.args[0]}", line_number)
            continue

        store.add(record)
        reporter.tick("lines")

        if record.source in skipped:
            reporter.tick("skipped")
            continue

        index.add(record)
        _register_lineage(graph, record, reporter)

    for issue in graph.resolve():
        child = store.get(issue.child_line)
        if issue.reason == "cycle":
            reporter.warning(
                f"Feature '{child.feature_id}' lists itself as Parent; dropping the edge",
                child.line_number,
            )
        else:
            reporter.warning(
                f"Parent '{issue.parent_id}' of {child.type} '{child.feature_id or child.target}' "
                f"not found; treating it as an orphan",
                child.line_number,
            )

    logging.info(f"Parsed {len(store)} records ({index.record_count} indexed, "
                 f"{len(graph.id_to_line)} identifiers)")
    return store, index, graph


def _register_lineage(graph: LineageGraph, record: FeatureRecord,
                      reporter: ProgressReporter) -> None:
    feature_id = record.feature_id
    if feature_id and not graph.register_id(feature_id, record.line_id):
        first = graph.line_for(feature_id)
        reporter.warning(f"Duplicate ID '{feature_id}' ignored (first seen as record {first})",
                         record.line_number)
    for parent_id in record.parent_ids:
        graph.add_pending_parent(record.line_id, parent_id)


class FeatureFileParser:
    """Parse a GFF3 file from disk."""

    def __init__(self, file_path: str, reporter: Optional[ProgressReporter] = None):
        self.file_path = file_path
        self.reporter = reporter or ProgressReporter()

    def parse(self, skip_sources: Iterable[str] = ()) -> ParseResult:
        logging.info(f"Parsing GFF3 file: {self.file_path}")
        try:
            with open(self.file_path, 'r') as f:
                return parse(f, skip_sources, self.reporter)
        except FileNotFoundError:
            raise ParseError("Annotation file not found", self.file_path)
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to read annotation file: {e}", self.file_path)


def load_id_list(file_path: str) -> FrozenSet[str]:
    """Read an identifier allow-list, one identifier per line."""
    identifiers = set()
    try:
        with open(file_path, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                identifiers.add(line.split()[0])
    except FileNotFoundError:
        raise ParseError("Identifier list not found", file_path)
    except OSError as e:
        raise ParseError(f"Failed to read identifier list: {e}", file_path)

    logging.info(f"Loaded {len(identifiers)} identifiers from {file_path}")
    return frozenset(identifiers)

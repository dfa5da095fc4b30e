#!/usr/bin/env python3

"""
Conversion of alignment features into gene models.

The engine walks the position index in canonical order and renders every
record it visits. match records that pass the filters are expanded into a
gene/mRNA pair followed by one exon and one CDS per match_part child.
"""

import re
from dataclasses import dataclass, asdict
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from .data_structures import (
    TYPE_EQUIVALENCE, FeatureRecord, LineageGraph, PositionIndex, RecordStore
)
from .writers import format_record, format_sequence_region
from ..utils.progress import ProgressReporter

# Trailing transcript suffix removed from a Name to get the gene id.
TRANSCRIPT_SUFFIX = re.compile(r"-mRNA.*$")

# Appended to a Name without a transcript suffix to form the mRNA id.
DEFAULT_TRANSCRIPT_SUFFIX = "-mRNA-1"


def derive_gene_id(transcript_name: str) -> str:
    """Strip a trailing '-mRNA...' suffix, e.g. geneX-mRNA-1 -> geneX."""
    gene_id = TRANSCRIPT_SUFFIX.sub("", transcript_name)
    return gene_id or transcript_name


def compute_phase(target: str) -> Optional[int]:
    """Reading-frame phase of an aligned fragment.

    Uses the alignment start that follows the reference name in a Target
    attribute ("ref 12 20" -> (12 - 1) % 3 = 2). The phase is computed for
    each fragment on its own, not accumulated along the transcript.
    Returns None when there is no numeric start.
    """
    tokens = target.split()
    if len(tokens) < 2:
        return None
    try:
        target_start = int(tokens[1])
    except ValueError:
        return None
    return (target_start - 1) % 3


def _attributes(**values) -> Dict[str, str]:
    return {key: value for key, value in values.items() if value}


@dataclass
class FilterPolicy:
    """Source and identifier filters applied to convertible records."""
    accepted_sources: FrozenSet[str]
    allowed_ids: Optional[FrozenSet[str]] = None
    keep_unconverted: bool = False

    def __post_init__(self):
        self.accepted_sources = frozenset(self.accepted_sources)
        if self.allowed_ids is not None:
            self.allowed_ids = frozenset(self.allowed_ids)

    def accepts_source(self, record: FeatureRecord) -> bool:
        return record.source in self.accepted_sources

    def accepts_target(self, target: str) -> bool:
        if not self.allowed_ids:
            return True
        return target in self.allowed_ids

    def accepts(self, record: FeatureRecord) -> bool:
        return self.accepts_source(record) and self.accepts_target(record.target)


@dataclass
class ConversionStats:
    """Counters reported at the end of a conversion."""
    genes_created: int = 0
    features_created: int = 0
    records_emitted: int = 0
    records_dropped: int = 0
    sequence_regions: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class ConversionEngine:
    """Render a parsed annotation in canonical order, converting alignments."""

    def __init__(self, store: RecordStore, index: PositionIndex, graph: LineageGraph,
                 filters: FilterPolicy, reporter: Optional[ProgressReporter] = None):
        self.store = store
        self.index = index
        self.graph = graph
        self.filters = filters
        self.reporter = reporter or ProgressReporter()
        self.stats = ConversionStats()
        self.lines: List[str] = []
        self._expanded: Set[int] = set()

    def run(self) -> List[str]:
        """Visit every indexed record and return the output lines."""
        self.stats = ConversionStats()
        self.lines = []
        self._expanded = set()
        for line_id in self.index.iter_ordered():
            self._visit(self.store.get(line_id))
            self.reporter.tick("records")
        return self.lines

    def _visit(self, record: FeatureRecord) -> None:
        equivalent = TYPE_EQUIVALENCE.get(record.type)
        if equivalent is None:
            self._emit(record)
        elif equivalent == "gene":
            if self.filters.accepts(record):
                self._expand_gene(record)
            else:
                self._reject(record)
        elif record.line_id in self._expanded or self._has_expanding_ancestor(record):
            # parts are only rendered through their match's expansion
            return
        else:
            self._reject(record)

    def _emit(self, record: FeatureRecord) -> None:
        if record.feature_id and record.feature_id == record.seq_id:
            self.lines.append(format_sequence_region(record))
            self.stats.sequence_regions += 1
        self.lines.append(format_record(record))
        self.stats.records_emitted += 1

    def _emit_derived(self, record: FeatureRecord) -> None:
        self.lines.append(format_record(record))
        self.stats.features_created += 1

    def _reject(self, record: FeatureRecord) -> None:
        if self.filters.keep_unconverted:
            self._emit(record)
        else:
            self.stats.records_dropped += 1
            self.reporter.debug(f"Dropping {record.type} '{record.target}' (line {record.line_number})")

    def _has_expanding_ancestor(self, record: FeatureRecord) -> bool:
        """True when an accepted match reaches this part through a chain of parts."""
        pending = [record.line_id]
        seen = {record.line_id}
        while pending:
            for parent_line in self.graph.parents_of(pending.pop()):
                if parent_line in seen:
                    continue
                seen.add(parent_line)
                parent = self.store.get(parent_line)
                equivalent = TYPE_EQUIVALENCE.get(parent.type)
                if equivalent == "gene" and self.filters.accepts(parent):
                    return True
                if equivalent == "exon":
                    pending.append(parent_line)
        return False

    def _expand_gene(self, record: FeatureRecord) -> None:
        transcript_id = record.name or record.target or record.feature_id
        gene_id = derive_gene_id(transcript_id)
        if gene_id == transcript_id:
            # keep gene and mRNA ids distinct
            transcript_id = f"{transcript_id}{DEFAULT_TRANSCRIPT_SUFFIX}"

        gene = record.derive(
            type="gene", phase=".",
            attributes=_attributes(ID=gene_id, Name=gene_id, Origin=record.feature_id),
        )
        mrna = record.derive(
            type="mRNA", phase=".",
            attributes=_attributes(ID=transcript_id, Name=transcript_id, Parent=gene_id),
        )
        self._emit_derived(gene)
        self._emit_derived(mrna)
        self.stats.genes_created += 1

        parts = self._collect_parts(record.line_id, {record.line_id})
        self._expanded.update(parts)
        total = len(parts)
        for position, part_line in enumerate(parts, 1):
            number = total - position + 1 if record.is_reverse else position
            self._expand_part(self.store.get(part_line), number, record.target, transcript_id)

    def _collect_parts(self, line_id: int, visited: Set[int]) -> List[int]:
        """Exon-mapped descendants of a record, depth first in file order."""
        parts = []
        for child_line in self.graph.children_of(line_id):
            child = self.store.get(child_line)
            if TYPE_EQUIVALENCE.get(child.type) != "exon":
                continue
            if child_line in visited:
                self.reporter.warning(
                    f"{child.type} '{child.feature_id or child.target}' reached twice while "
                    f"expanding; dropping the edge from record {line_id}",
                    child.line_number,
                )
                continue
            visited.add(child_line)
            parts.append(child_line)
            parts.extend(self._collect_parts(child_line, visited))
        return parts

    def _expand_part(self, part: FeatureRecord, number: int, parent_target: str,
                     transcript_id: str) -> None:
        exon_id = f"{parent_target}:exon{number:02d}"
        cds_id = f"{parent_target}:CDS{number:02d}"
        target = part.attributes.get("Target", "")

        phase = compute_phase(target)
        if phase is None:
            self.reporter.warning(
                f"No numeric alignment start in Target '{target}' of "
                f"'{part.feature_id or part.target}'; using phase 0",
                part.line_number,
            )
            phase = 0

        exon = part.derive(
            type="exon", phase=".",
            attributes=_attributes(ID=exon_id, Parent=transcript_id, Target=target,
                                   Gap=part.attributes.get("Gap", "")),
        )
        cds = part.derive(
            type="CDS", phase=str(phase),
            attributes=_attributes(ID=cds_id, Parent=transcript_id),
        )
        self._emit_derived(exon)
        self._emit_derived(cds)


def convert(store: RecordStore, index: PositionIndex, graph: LineageGraph,
            filters: FilterPolicy, reporter: Optional[ProgressReporter] = None) -> List[str]:
    """Return the converted feature lines in canonical traversal order."""
    return ConversionEngine(store, index, graph, filters, reporter).run()


def build_filter_policy(sources: Iterable[str], allowed_ids: Optional[Iterable[str]] = None,
                        keep_unconverted: bool = False) -> FilterPolicy:
    return FilterPolicy(
        accepted_sources=frozenset(sources),
        allowed_ids=frozenset(allowed_ids) if allowed_ids is not None else None,
        keep_unconverted=keep_unconverted,
    )

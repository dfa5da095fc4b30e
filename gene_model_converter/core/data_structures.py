#!/usr/bin/env python3

"""
Core data structures for the gene model converter.

Defines the feature record, the record store that owns every parsed line,
the position index used for canonical output ordering, and the lineage
graph rebuilt from ID/Parent attributes.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple


# Alignment feature types rewritten into gene-model types.
TYPE_EQUIVALENCE: Dict[str, str] = {
    "match": "gene",
    "match_part": "exon",
}

# Output order for records sharing a sequence and start coordinate.
TYPE_PRIORITY: Tuple[str, ...] = (
    # sequence-level containers
    "chromosome",
    "supercontig",
    "scaffold",
    "contig",
    "region",
    # gene models
    "gene",
    "pseudogene",
    "mRNA",
    "transcript",
    "exon",
    "five_prime_UTR",
    "three_prime_UTR",
    "CDS",
    "start_codon",
    "stop_codon",
    "intron",
    # non-coding RNA
    "ncRNA",
    "tRNA",
    "rRNA",
    "snRNA",
    "snoRNA",
    "miRNA",
    "lnc_RNA",
    # alignments
    "match",
    "cDNA_match",
    "EST_match",
    "protein_match",
    "match_part",
)

_TYPE_RANK: Dict[str, int] = {name: rank for rank, name in enumerate(TYPE_PRIORITY)}

IndexKey = Tuple[str, str, str]


def parse_coordinate(value: str) -> Optional[int]:
    """Return an integer coordinate, or None when the text is not numeric."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def coordinate_sort_key(value: str) -> Tuple[int, int, str]:
    """Numeric coordinates ascending, then non-numeric ones lexically."""
    position = parse_coordinate(value)
    if position is None:
        return (1, 0, value)
    return (0, position, "")


def type_sort_key(feature_type: str) -> Tuple[int, str]:
    """Rank by TYPE_PRIORITY; unlisted types follow alphabetically."""
    rank = _TYPE_RANK.get(feature_type)
    if rank is None:
        return (len(TYPE_PRIORITY), feature_type)
    return (rank, "")


@dataclass
class FeatureRecord:
    """One tab-delimited annotation line with its nine GFF3 columns."""
    line_id: int
    seq_id: str
    source: str
    type: str
    start: str
    end: str
    score: str = "."
    strand: str = "."
    phase: str = "."
    attributes: Dict[str, str] = field(default_factory=dict)
    line_number: int = 0

    @property
    def start_position(self) -> Optional[int]:
        return parse_coordinate(self.start)

    @property
    def end_position(self) -> Optional[int]:
        return parse_coordinate(self.end)

    @property
    def feature_id(self) -> str:
        return self.attributes.get("ID", "")

    @property
    def name(self) -> str:
        return self.attributes.get("Name", "")

    @property
    def parent_ids(self) -> List[str]:
        """Identifiers listed in the Parent attribute (comma separated)."""
        parents = self.attributes.get("Parent", "")
        return [p.strip() for p in parents.split(",") if p.strip()]

    @property
    def target(self) -> str:
        """Target reference name (text before the first whitespace), else Name."""
        target = self.attributes.get("Target", "").split()
        if target:
            return target[0]
        return self.name

    @property
    def is_reverse(self) -> bool:
        return self.strand == "-"

    def derive(self, **changes) -> 'FeatureRecord':
        """Return a new record with the given fields changed.

        The attribute mapping is copied so the source record is never
        modified through the derived one.
        """
        attributes = changes.pop("attributes", None)
        if attributes is None:
            attributes = dict(self.attributes)
        return replace(self, attributes=attributes, **changes)


class RecordStore:
    """Owns every parsed feature record, addressed by line id."""

    def __init__(self):
        self._records: List[FeatureRecord] = []
        self.directives: List[str] = []

    @property
    def next_line_id(self) -> int:
        return len(self._records)

    def add(self, record: FeatureRecord) -> FeatureRecord:
        if record.line_id != len(self._records):
            raise ValueError(
                f"Record line id {record.line_id} out of sequence (expected {len(self._records)})"
            )
        self._records.append(record)
        return record

    def add_directive(self, line: str) -> None:
        self.directives.append(line)

    def get(self, line_id: int) -> FeatureRecord:
        return self._records[line_id]

    def __getitem__(self, line_id: int) -> FeatureRecord:
        return self._records[line_id]

    def __contains__(self, line_id) -> bool:
        return isinstance(line_id, int) and 0 <= line_id < len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[FeatureRecord]:
        return iter(self._records)


class PositionIndex:
    """Groups line ids by (seq_id, start, type) for canonical traversal."""

    def __init__(self):
        self._entries: Dict[IndexKey, List[int]] = {}

    @staticmethod
    def key_for(record: FeatureRecord) -> IndexKey:
        return (record.seq_id, record.start, record.type)

    def add(self, record: FeatureRecord) -> None:
        self._entries.setdefault(self.key_for(record), []).append(record.line_id)

    def get(self, seq_id: str, start: str, feature_type: str) -> List[int]:
        return list(self._entries.get((seq_id, str(start), feature_type), []))

    def seq_ids(self) -> List[str]:
        return sorted({key[0] for key in self._entries})

    @property
    def record_count(self) -> int:
        return sum(len(line_ids) for line_ids in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    @staticmethod
    def _sort_key(key: IndexKey):
        seq_id, start, feature_type = key
        return (seq_id, coordinate_sort_key(start), type_sort_key(feature_type))

    def ordered_keys(self) -> List[IndexKey]:
        return sorted(self._entries, key=self._sort_key)

    def iter_ordered(self) -> Iterator[int]:
        """Yield line ids by sequence, start coordinate, then type priority."""
        for key in self.ordered_keys():
            yield from self._entries[key]


@dataclass
class LineageIssue:
    """A Parent reference that could not be linked."""
    child_line: int
    parent_id: str
    reason: str  # 'unresolved' or 'cycle'


class LineageGraph:
    """ID -> line and parent line -> child lines, rebuilt from attributes."""

    def __init__(self):
        self.id_to_line: Dict[str, int] = {}
        self.parent_to_children: Dict[int, List[int]] = {}
        self.child_to_parents: Dict[int, List[int]] = {}
        self.orphans: List[int] = []
        self._pending: List[Tuple[int, str]] = []

    def register_id(self, feature_id: str, line_id: int) -> bool:
        """Map an ID to its line. Returns False if the ID was already taken."""
        if feature_id in self.id_to_line:
            return False
        self.id_to_line[feature_id] = line_id
        return True

    def add_pending_parent(self, child_line: int, parent_id: str) -> None:
        self._pending.append((child_line, parent_id))

    def link(self, parent_line: int, child_line: int) -> None:
        self.parent_to_children.setdefault(parent_line, []).append(child_line)
        self.child_to_parents.setdefault(child_line, []).append(parent_line)

    def resolve(self) -> List[LineageIssue]:
        """Link every pending Parent reference.

        Must run after the whole file has been read since a parent can be
        declared after its children.
        """
        issues: List[LineageIssue] = []
        linked = set()
        unlinked = set()
        for child_line, parent_id in self._pending:
            parent_line = self.id_to_line.get(parent_id)
            if parent_line is None:
                issues.append(LineageIssue(child_line, parent_id, "unresolved"))
                unlinked.add(child_line)
            elif parent_line == child_line:
                issues.append(LineageIssue(child_line, parent_id, "cycle"))
                unlinked.add(child_line)
            else:
                self.link(parent_line, child_line)
                linked.add(child_line)
        self._pending = []
        self.orphans.extend(sorted(unlinked - linked))
        return issues

    def line_for(self, feature_id: str) -> Optional[int]:
        return self.id_to_line.get(feature_id)

    def children_of(self, line_id: int) -> List[int]:
        return list(self.parent_to_children.get(line_id, []))

    def parents_of(self, line_id: int) -> List[int]:
        return list(self.child_to_parents.get(line_id, []))

    @property
    def pending_count(self) -> int:
        return len(self._pending)

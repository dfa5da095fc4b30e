#!/usr/bin/env python3

"""
GFF3 output rendering and file writing.
"""

import logging
import os
import tempfile
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .data_structures import FeatureRecord
from .exceptions import OutputError

GFF_VERSION_DIRECTIVE = "##gff-version 3"

# Directives regenerated by the converter and therefore not copied from input.
REGENERATED_DIRECTIVES = ("##gff-version", "##sequence-region")


def format_attributes(attributes: Dict[str, str]) -> str:
    """Encode attributes as key=value pairs, leaving out empty values."""
    pairs = [f"{key}={value}" for key, value in attributes.items() if value != "" and value is not None]
    return ";".join(pairs) if pairs else "."


def format_record(record: FeatureRecord) -> str:
    """Render a record as a nine-column GFF3 line."""
    return "\t".join([
        record.seq_id,
        record.source,
        record.type,
        str(record.start),
        str(record.end),
        record.score or ".",
        record.strand or ".",
        record.phase or ".",
        format_attributes(record.attributes),
    ])


def format_sequence_region(record: FeatureRecord) -> str:
    return f"##sequence-region {record.seq_id} 1 {record.end}"


def render_header(created: Optional[datetime] = None) -> List[str]:
    created = created or datetime.now()
    return [
        GFF_VERSION_DIRECTIVE,
        f"# created {created.isoformat(timespec='seconds')}",
    ]


def passthrough_directives(directives: Iterable[str]) -> List[str]:
    """Input comments and directives that are copied to the output."""
    return [line for line in directives
            if not line.startswith(REGENERATED_DIRECTIVES)]


def current_umask() -> int:
    """Process umask; mkstemp creates files 0600 regardless of it."""
    mask = os.umask(0)
    os.umask(mask)
    return mask


class GFF3Writer:
    """Write converted lines to a destination file.

    Lines go to a temporary file in the destination directory which
    replaces the destination only once everything has been written.
    """

    def __init__(self, output_path: str):
        self.output_path = output_path

    def write(self, lines: Iterable[str], directives: Iterable[str] = (),
              created: Optional[datetime] = None) -> int:
        directory = os.path.dirname(os.path.abspath(self.output_path))
        try:
            fd, temp_path = tempfile.mkstemp(prefix=".gmc-", suffix=".gff3", dir=directory)
        except OSError as e:
            raise OutputError(f"Cannot open output destination: {e}", self.output_path)

        written = 0
        replaced = False
        try:
            with os.fdopen(fd, 'w') as f:
                for line in render_header(created):
                    f.write(line + "\n")
                for line in passthrough_directives(directives):
                    f.write(line + "\n")
                for line in lines:
                    f.write(line + "\n")
                    written += 1
            os.chmod(temp_path, 0o666 & ~current_umask())
            os.replace(temp_path, self.output_path)
            replaced = True
        except OSError as e:
            raise OutputError(f"Failed writing output: {e}", self.output_path)
        finally:
            if not replaced and os.path.exists(temp_path):
                os.unlink(temp_path)

        logging.info(f"Wrote {written} lines to {self.output_path}")
        return written

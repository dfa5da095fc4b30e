#!/usr/bin/env python3

"""
Unit tests for GFF3 parsing.

Covers attribute parsing, the single indexing pass and the recoverable
problems it reports.
"""

import io
import os
import sys
import tempfile
import unittest

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from gene_model_converter.core.parsers import (
    parse, parse_attributes, parse_feature_line, FeatureFileParser, load_id_list
)
from gene_model_converter.core.exceptions import ParseError, RecordError
from gene_model_converter.utils.progress import ProgressReporter


def gff_line(seq_id, source, feature, start, end, attributes, strand="+"):
    return "\t".join([seq_id, source, feature, str(start), str(end), ".", strand, ".", attributes])


def parse_text(lines, skip_sources=()):
    reporter = ProgressReporter()
    store, index, graph = parse(io.StringIO("\n".join(lines) + "\n"), skip_sources, reporter)
    return store, index, graph, reporter


class TestAttributeParsing(unittest.TestCase):
    """Test parse_attributes."""

    def test_preserves_order_and_splits_on_first_equals(self):
        attributes = parse_attributes("ID=aln1;Name=geneX;Note=a=b;Target=geneX 1 50")
        self.assertEqual(list(attributes), ["ID", "Name", "Note", "Target"])
        self.assertEqual(attributes["Note"], "a=b")
        self.assertEqual(attributes["Target"], "geneX 1 50")

    def test_malformed_pieces_are_skipped(self):
        reporter = ProgressReporter()
        attributes = parse_attributes("ID=a;broken;=nokey;Name=b;", reporter, 7)
        self.assertEqual(attributes, {"ID": "a", "Name": "b"})
        self.assertEqual(reporter.warning_count, 2)
        self.assertTrue(reporter.warnings[0].startswith("line 7:"))


class TestFeatureLine(unittest.TestCase):
    """Test parse_feature_line."""

    def test_nine_fields(self):
        record = parse_feature_line(gff_line("chr1", "src", "gene", 10, 20, "ID=g1"), 0, 1)
        self.assertEqual(record.seq_id, "chr1")
        self.assertEqual(record.start, "10")
        self.assertEqual(record.feature_id, "g1")
        self.assertEqual(record.line_number, 1)

    def test_wrong_field_count(self):
        with self.assertRaises(RecordError):
            parse_feature_line("chr1\tsrc\tgene\t10\t20", 0, 4)


class TestParse(unittest.TestCase):
    """Test the indexing pass."""

    def test_builds_store_index_and_graph(self):
        store, index, graph, reporter = parse_text([
            "##gff-version 3",
            gff_line("chr1", "aln", "match_part", 100, 200, "ID=p1;Parent=aln1;Target=geneX 1 20"),
            gff_line("chr1", "aln", "match", 100, 500, "ID=aln1;Name=geneX-mRNA-1"),
        ])

        self.assertEqual(len(store), 2)
        self.assertEqual(store.directives, ["##gff-version 3"])
        self.assertEqual(index.record_count, 2)
        # parent declared after its child
        self.assertEqual(graph.children_of(1), [0])
        self.assertEqual(reporter.warning_count, 0)

    def test_malformed_record_dropped(self):
        store, index, _, reporter = parse_text([
            "chr1\taln\tmatch\t100",
            gff_line("chr1", "aln", "match", 100, 500, "ID=aln1"),
        ])
        self.assertEqual(len(store), 1)
        self.assertEqual(store.get(0).line_number, 2)
        self.assertEqual(reporter.warning_count, 1)
        self.assertIn("line 1", reporter.warnings[0])

    def test_fasta_section_ignored(self):
        for marker in ("##FASTA", "##fasta"):
            store, _, _, _ = parse_text([
                gff_line("chr1", "aln", "match", 100, 500, "ID=aln1"),
                marker,
                ">chr1",
                "ACGTACGT",
                gff_line("chr1", "aln", "match", 600, 900, "ID=aln2"),
            ])
            self.assertEqual(len(store), 1)

    def test_skipped_source_stored_but_not_indexed(self):
        store, index, graph, _ = parse_text([
            gff_line("chr1", "repeatmasker", "match", 100, 500, "ID=rm1"),
            gff_line("chr1", "aln", "match", 100, 500, "ID=aln1"),
        ], skip_sources=["repeatmasker"])

        self.assertEqual(len(store), 2)
        self.assertEqual(index.record_count, 1)
        self.assertIsNone(graph.line_for("rm1"))
        self.assertEqual(graph.line_for("aln1"), 1)

    def test_duplicate_id_keeps_first(self):
        store, _, graph, reporter = parse_text([
            gff_line("chr1", "aln", "gene", 100, 500, "ID=foo"),
            gff_line("chr1", "aln", "gene", 900, 1500, "ID=foo"),
            gff_line("chr1", "aln", "mRNA", 100, 500, "ID=tx;Parent=foo"),
        ])

        self.assertEqual(graph.line_for("foo"), 0)
        self.assertEqual(graph.children_of(0), [2])
        self.assertEqual(graph.children_of(1), [])
        self.assertEqual(len(store), 3)
        self.assertTrue(any("Duplicate ID 'foo'" in w for w in reporter.warnings))

    def test_unresolved_parent_warns(self):
        store, _, graph, reporter = parse_text([
            gff_line("chr1", "aln", "match_part", 100, 200, "ID=p1;Parent=nowhere"),
        ])
        self.assertEqual(graph.orphans, [0])
        self.assertEqual(len(store), 1)
        self.assertIn("'nowhere'", reporter.warnings[0])


class TestFileInputs(unittest.TestCase):
    """Test reading from disk."""

    def test_missing_file(self):
        with self.assertRaises(ParseError):
            FeatureFileParser("/nonexistent/input.gff3").parse()

    def test_load_id_list(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.txt', delete=False) as f:
            f.write("geneA\n\n# comment\ngeneB extra\n")
            path = f.name

        try:
            self.assertEqual(load_id_list(path), frozenset({"geneA", "geneB"}))
        finally:
            os.unlink(path)

    def test_missing_id_list(self):
        with self.assertRaises(ParseError):
            load_id_list("/nonexistent/ids.txt")


if __name__ == '__main__':
    unittest.main()

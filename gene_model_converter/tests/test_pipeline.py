#!/usr/bin/env python3

"""
End-to-end tests for the conversion pipeline and command line.
"""

import logging
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stderr
from io import StringIO
from unittest.mock import patch

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from gene_model_converter import GeneConversionPipeline, ConverterConfig, ConfigurationError
from gene_model_converter.utils.progress import ProgressReporter
import converter_cli

CLEAN_ENV = {k: v for k, v in os.environ.items() if not k.startswith('CONVERTER_')}

INPUT_GFF = "\n".join([
    "##gff-version 3",
    "##sequence-region chr1 1 1000",
    "# alignments from the test assembly",
    "chr1\tasm\tcontig\t1\t1000\t.\t+\t.\tID=chr1",
    "chr1\taln\tmatch\t100\t500\t.\t+\t.\tID=aln1;Name=geneX-mRNA-1;Target=geneX 1 50",
    "chr1\taln\tmatch_part\t100\t200\t.\t+\t.\tID=aln1.p1;Parent=aln1;Target=geneX 1 20",
    "chr1\taln\tmatch_part\t300\t500\t.\t+\t.\tID=aln1.p2;Parent=aln1;Target=geneX 21 50",
    "chr1\taln\tmatch\t700\t900\t.\t-\t.\tID=aln2;Name=geneY-mRNA-1;Target=geneY 1 60",
    "chr1\taln\tmatch_part\t700\t900\t.\t-\t.\tID=aln2.p1;Parent=aln2;Target=geneY 1 60",
    "##FASTA",
    ">chr1",
    "ACGT",
]) + "\n"


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.input_path = os.path.join(self.tmpdir, "alignments.gff3")
        with open(self.input_path, "w") as f:
            f.write(INPUT_GFF)

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def read_output(self, path=None):
        path = path or os.path.join(self.tmpdir, "alignments.converted.gff3")
        with open(path) as f:
            return f.read().splitlines()


class TestGeneConversionPipeline(PipelineTestCase):
    """Test the pipeline driver."""

    def make_config(self, **overrides):
        values = dict(input_path=self.input_path, sources=["aln"],
                      enable_memory_monitoring=False)
        values.update(overrides)
        return ConverterConfig(**values)

    def test_execute_writes_converted_file(self):
        pipeline = GeneConversionPipeline(self.make_config())
        result = pipeline.execute()

        lines = self.read_output()
        self.assertEqual(result.output_path, os.path.join(self.tmpdir, "alignments.converted.gff3"))
        self.assertEqual(lines[0], "##gff-version 3")
        self.assertTrue(lines[1].startswith("# created "))
        self.assertEqual(lines[2], "# alignments from the test assembly")
        self.assertEqual(lines.count("##sequence-region chr1 1 1000"), 1)
        self.assertFalse(any(line.startswith(">") or line == "ACGT" for line in lines))

        self.assertEqual(result.stats.genes_created, 2)
        self.assertEqual(result.stats.features_created, 10)
        self.assertEqual(result.lines_written, 12)

        types = [line.split("\t")[2] for line in lines if not line.startswith("#")]
        self.assertEqual(types, ["contig", "gene", "mRNA", "exon", "CDS", "exon", "CDS",
                                 "gene", "mRNA", "exon", "CDS"])

    def test_id_list_and_keep_unconverted(self):
        id_list = os.path.join(self.tmpdir, "ids.txt")
        with open(id_list, "w") as f:
            f.write("geneY\n")

        output = os.path.join(self.tmpdir, "models.gff3")
        result = GeneConversionPipeline(self.make_config(
            id_list_path=id_list, keep_unconverted=True, output_path=output)).execute()

        lines = self.read_output(output)
        self.assertEqual(result.stats.genes_created, 1)
        self.assertIn("chr1\taln\tmatch\t100\t500\t.\t+\t.\tID=aln1;Name=geneX-mRNA-1;Target=geneX 1 50",
                      lines)
        self.assertTrue(any("ID=geneY;Name=geneY;Origin=aln2" in line for line in lines))

    def test_injected_reporter_collects_warnings(self):
        with open(self.input_path, "w") as f:
            f.write(INPUT_GFF.replace("Parent=aln2", "Parent=missing"))

        reporter = ProgressReporter()
        result = GeneConversionPipeline(self.make_config(), reporter).execute()

        self.assertEqual(result.stats.genes_created, 2)
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("'missing'", result.warnings[0])
        self.assertEqual(result.warnings, reporter.warnings)

    def test_debug_log_handler_released(self):
        root_logger = logging.getLogger()
        handlers_before = list(root_logger.handlers)
        level_before = root_logger.level

        for _ in range(2):
            GeneConversionPipeline(self.make_config(debug_mode=True)).execute()

        self.assertEqual(root_logger.handlers, handlers_before)
        self.assertEqual(root_logger.level, level_before)
        log_path = os.path.join(self.tmpdir, "alignments.converted.log")
        with open(log_path) as f:
            self.assertIn("Indexing pass", f.read())

    def test_passes_tracked(self):
        pipeline = GeneConversionPipeline(self.make_config())
        pipeline.execute()

        names = [stats.name for stats in pipeline.monitor.passes]
        self.assertEqual(names, ["indexing", "conversion", "writing"])
        self.assertEqual(pipeline.monitor.get("indexing").items, 6)
        self.assertEqual(pipeline.monitor.get("writing").items, 12)

    def test_missing_input_fails(self):
        config = self.make_config(input_path=os.path.join(self.tmpdir, "missing.gff3"))
        self.assertFalse(GeneConversionPipeline(config).run())

    def test_missing_sources_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            GeneConversionPipeline(self.make_config(sources=[])).execute()

    def test_missing_output_directory_fails(self):
        config = self.make_config(output_path=os.path.join(self.tmpdir, "no", "out.gff3"))
        self.assertFalse(GeneConversionPipeline(config).run())


class TestCommandLine(PipelineTestCase):
    """Test converter_cli.main."""

    def test_main_success(self):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            status = converter_cli.main(["-i", self.input_path, "-s", "aln,blat"])

        self.assertEqual(status, 0)
        lines = self.read_output()
        self.assertTrue(any("ID=geneX:CDS02" in line for line in lines))

    def test_main_missing_sources(self):
        stderr = StringIO()
        with patch.dict(os.environ, CLEAN_ENV, clear=True), redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as ctx:
                converter_cli.main(["-i", self.input_path])

        self.assertNotEqual(ctx.exception.code, 0)
        self.assertIn("source", stderr.getvalue())

    def test_main_missing_input(self):
        stderr = StringIO()
        with patch.dict(os.environ, CLEAN_ENV, clear=True), redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as ctx:
                converter_cli.main(["-s", "aln"])

        self.assertNotEqual(ctx.exception.code, 0)
        self.assertIn("input", stderr.getvalue())

    def test_main_unreadable_input(self):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            status = converter_cli.main(["-i", os.path.join(self.tmpdir, "nope.gff3"), "-s", "aln"])
        self.assertEqual(status, 1)


if __name__ == '__main__':
    unittest.main()

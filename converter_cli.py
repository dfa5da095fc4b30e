#!/usr/bin/env python3

"""
Command-line interface for the gene model converter.

Converts alignment features (match/match_part) of a GFF3 file into
gene/mRNA/exon/CDS models.
"""

import argparse
import sys
import logging
from typing import List, Optional

from gene_model_converter.core.config import load_config, split_list
from gene_model_converter.core.exceptions import ConfigurationError, ConverterError
from gene_model_converter.core.pipeline import GeneConversionPipeline


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Convert GFF3 alignment features into gene models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert alignments produced by exonerate
  python converter_cli.py -i alignments.gff3 -s exonerate

  # Restrict to listed targets, keep everything that was not converted
  python converter_cli.py -i alignments.gff3 -s exonerate,gth --id-list genes.txt --keep-unconverted -o models.gff3
        """
    )

    # Required arguments (may also come from --config or the environment)
    parser.add_argument(
        '-i', '--input',
        help='Input GFF3 file'
    )
    parser.add_argument(
        '-s', '--sources',
        help='Comma-separated sources whose alignments are converted'
    )

    # Optional parameters
    parser.add_argument(
        '-o', '--output',
        help='Output GFF3 file (default: <input>.converted.gff3)'
    )
    parser.add_argument(
        '--id-list',
        help='File of target identifiers to convert, one per line'
    )
    parser.add_argument(
        '--skip-sources',
        help='Comma-separated sources to ignore entirely'
    )
    parser.add_argument(
        '--keep-unconverted',
        action='store_true',
        default=None,
        help='Emit filtered-out alignment records unchanged instead of dropping them'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        default=None,
        help='Report progress while processing'
    )
    parser.add_argument(
        '--config',
        help='Configuration file (JSON or YAML)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    # Advanced options
    parser.add_argument(
        '--memory-limit',
        type=int,
        help='Memory limit in MB (default: 4096)'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(config_path=args.config, use_env=True)
    except ConfigurationError as e:
        parser.error(str(e))

    # Override config with command line arguments
    if args.input is not None:
        config.input_path = args.input
    if args.sources is not None:
        config.sources = split_list(args.sources)
    if args.output is not None:
        config.output_path = args.output
    if args.id_list is not None:
        config.id_list_path = args.id_list
    if args.skip_sources is not None:
        config.skip_sources = split_list(args.skip_sources)
    if args.keep_unconverted is not None:
        config.keep_unconverted = args.keep_unconverted
    if args.verbose is not None:
        config.verbose = args.verbose
    if args.memory_limit is not None:
        config.memory_limit_mb = args.memory_limit

    # Re-validate after CLI overrides.
    try:
        config.validate()
        config.check_required()
    except ConfigurationError as e:
        parser.error(str(e))

    try:
        pipeline = GeneConversionPipeline(config)
        result = pipeline.execute()
    except ConverterError as e:
        logger.error(f"Conversion failed: {e}")
        logger.debug("Full traceback:", exc_info=True)
        return 1

    logger.info(f"Genes created: {result.stats.genes_created}")
    logger.info(f"Features created: {result.stats.features_created}")
    logger.info(f"Output written to {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
RDF-KV Command Line Interface

Reads a form submission and prints the graph edits it describes.
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional
from urllib.parse import parse_qs

from dotenv import load_dotenv
from rdflib import Dataset

from rdfkv import __version__
from rdfkv.config.config_loader import RDFKVConfig
from rdfkv.kv.errors import ConfigurationError, RDFKVError
from rdfkv.model.edit_model import EditSet


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for rdfkv."""
    parser = argparse.ArgumentParser(
        description="rdfkv - turn form key/value pairs into RDF graph edits",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rdfkv --subject https://example.org/doc form.json
  echo '{"dct:title": "Hi!"}' | rdfkv -s https://example.org/doc -P dct=http://purl.org/dc/terms/
  rdfkv -s https://example.org/doc --form 'dct%3Atitle=Hi&%3D+dct%3Adescription=' --format json
        """
    )

    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="JSON file holding an object of key to value or list of values ('-' for stdin)"
    )

    parser.add_argument(
        "--form",
        type=str,
        help="URL-encoded form body to process instead of a JSON input"
    )

    parser.add_argument(
        "--subject", "-s",
        type=str,
        help="Default subject URI (overrides RDFKV_SUBJECT and the config file)"
    )

    parser.add_argument(
        "--graph", "-g",
        type=str,
        help="Default graph URI (overrides RDFKV_GRAPH and the config file)"
    )

    parser.add_argument(
        "--prefix", "-P",
        action="append",
        default=[],
        metavar="NAME=URI",
        help="Register a namespace prefix; may be repeated"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to a YAML configuration file"
    )

    parser.add_argument(
        "--format", "-f",
        choices=["sparql", "json", "nquads"],
        default="sparql",
        help="Output format; nquads prints the inserts only. Default: sparql"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (overrides RDFKV_LOG_LEVEL and the config file)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"rdfkv {__version__}"
    )

    return parser.parse_args(argv)


def parse_prefixes(values: List[str]) -> Dict[str, str]:
    prefixes = {}
    for value in values:
        name, sep, uri = value.partition("=")
        if not sep or not name or not uri:
            raise ConfigurationError(f"Expected NAME=URI for --prefix, got {value!r}")
        prefixes[name] = uri
    return prefixes


def read_form(args: argparse.Namespace) -> Dict[str, List[str]]:
    """Read the form submission from --form or a JSON document."""
    if args.form is not None:
        return parse_qs(args.form, keep_blank_values=True)

    try:
        if args.input == "-":
            form = json.load(sys.stdin)
        else:
            with open(args.input, 'r', encoding='utf-8') as f:
                form = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read form input: {e}")

    if not isinstance(form, dict):
        raise ConfigurationError("Form input must be a JSON object")
    return form


def format_edits(edits: EditSet, output_format: str) -> str:
    if output_format == "json":
        return edits.to_model().model_dump_json(indent=2)
    if output_format == "nquads":
        inserts = EditSet()
        inserts.inserts.extend(edits.inserts)
        return inserts.apply(Dataset()).serialize(format="nquads")
    return edits.to_sparql_update()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the rdfkv command line interface."""
    load_dotenv()
    args = parse_args(argv)

    try:
        config = RDFKVConfig(args.config)
        config.validate_config()

        level = (args.log_level or config.get_log_level()).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(f"Invalid log level: {args.log_level}")

        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            stream=sys.stderr
        )

        prefixes = config.get_prefixes()
        prefixes.update(parse_prefixes(args.prefix))
        config.config_data['processor'] = {**(config.config_data.get('processor') or {}), 'prefixes': prefixes}

        processor = config.create_processor(subject=args.subject, graph=args.graph)
        edits = processor.process(read_form(args))
    except RDFKVError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_edits(edits, args.format))
    return 0


if __name__ == "__main__":
    sys.exit(main())

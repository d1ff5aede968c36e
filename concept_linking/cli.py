import argparse
import json
import logging
import sys
from pathlib import Path

from concept_linking.config import LinkingConfig
from concept_linking.context import TextDocumentContext
from concept_linking.service import ConceptLinkingService
from concept_linking.types import ValueType


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Look up knowledge base concepts for a query.")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to linking config JSON file.",
    )
    parser.add_argument("--query", type=str, required=True, help="Query text.")
    parser.add_argument("--mention", type=str, help="Mention text from the document.")
    parser.add_argument(
        "--document",
        type=str,
        help="Path to a text file containing the mention.",
    )
    parser.add_argument(
        "--offset",
        type=int,
        help="Character offset of the mention (defaults to its first occurrence).",
    )
    parser.add_argument("--project", type=str, required=True, help="Project identifier.")
    parser.add_argument("--repository", type=str, help="Restrict to one knowledge base id.")
    parser.add_argument("--scope", type=str, help="Only return descendants of this concept IRI.")
    parser.add_argument(
        "--value-type",
        type=str,
        default=ValueType.ANY_OBJECT.value,
        choices=[v.value for v in ValueType],
        help="Kind of item to look for.",
    )
    parser.add_argument("--output", type=str, help="Optional JSONL output path.")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config_data = json.loads(Path(args.config).read_text(encoding="utf-8"))
    config = LinkingConfig.from_dict(config_data)
    service = ConceptLinkingService.from_config(config)

    document = None
    offset = args.offset or 0
    if args.document:
        text = Path(args.document).read_text(encoding="utf-8")
        document = TextDocumentContext(text)
        if args.offset is None and args.mention:
            offset = max(text.find(args.mention), 0)

    response = service.lookup(
        args.repository,
        args.scope,
        ValueType(args.value_type),
        args.query,
        args.mention,
        offset,
        document,
        args.project,
    )

    lines = [json.dumps(h.to_dict(), ensure_ascii=False) for h in response.handles]
    if args.output:
        Path(args.output).write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    else:
        for line in lines:
            print(line)

    if response.error:
        print(response.error, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import markdown_parser, renderer_docx
from .codec import CODECS, Codec, get_codec
from .demos import DemoRegistry
from .errors import ParseError, ValidationError
from .renderer_html import render_page
from .resources import ResourceMap
from .schema import diagnose
from .settings import EditorSettings, load_settings
from .utils import configure_logging, format_for_path, read_text, resolve_output_path, write_text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ednotes",
        description="Validate, render and convert EdNotes block documents.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=str, help="Path to a YAML settings file")
    commands = parser.add_subparsers(dest="command", required=True)

    validate = commands.add_parser("validate", help="Check a block document against the schema")
    _add_input(validate)

    render = commands.add_parser("render", help="Render a block document to a standalone HTML page")
    _add_input(render)
    render.add_argument("-o", "--output", type=str, help="Output HTML path")
    render.add_argument("--title", type=str, help="Page title")

    export = commands.add_parser("export-docx", help="Export a block document to DOCX")
    _add_input(export)
    export.add_argument("-o", "--output", type=str, help="Output DOCX path")

    md_import = commands.add_parser("import-markdown", help="Convert Markdown into a block document")
    md_import.add_argument("input", type=str, help="Path to Markdown file")
    md_import.add_argument("-o", "--output", type=str, help="Output document path")
    md_import.add_argument("--to", choices=sorted(CODECS), help="Output format (default: from settings)")

    convert = commands.add_parser("convert", help="Re-serialize a block document as JSON or YAML")
    _add_input(convert)
    convert.add_argument("-o", "--output", type=str, help="Output document path")
    convert.add_argument("--to", choices=sorted(CODECS), required=True, help="Output format")
    return parser


def _add_input(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=str, help="Path to a JSON or YAML block document")
    parser.add_argument("--format", choices=sorted(CODECS), help="Input format (default: from file suffix)")


def _codec(name: str, settings: EditorSettings) -> Codec:
    return get_codec(name, settings.indent)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    try:
        settings = load_settings(args.config)
        input_path = Path(args.input).expanduser()
        if not input_path.exists():
            raise FileNotFoundError(f"Input file not found: {input_path}")
        return COMMANDS[args.command](args, input_path, settings)
    except (ParseError, ValidationError, FileNotFoundError, ValueError) as exc:
        logging.error("%s", exc)
        return 1


def _input_codec(args, input_path: Path, settings: EditorSettings) -> Codec:
    return _codec(args.format or format_for_path(input_path, settings.raw_format), settings)


def cmd_validate(args, input_path: Path, settings: EditorSettings) -> int:
    codec = _input_codec(args, input_path, settings)
    logging.info("Validating %s", input_path)
    errors = diagnose(codec.load_data(read_text(input_path)))
    for error in errors:
        logging.error("%s", error)
    if errors:
        logging.info("%d problem(s) found", len(errors))
        return 1
    logging.info("Document is valid")
    return 0


def cmd_render(args, input_path: Path, settings: EditorSettings) -> int:
    document = _input_codec(args, input_path, settings).parse(read_text(input_path))
    output_path = resolve_output_path(input_path, args.output, ".html")
    logging.info("Rendering HTML to %s", output_path)
    rendered = render_page(
        document,
        resources=ResourceMap.from_document(document),
        registry=DemoRegistry(),
        title=args.title or settings.page_title,
    )
    write_text(output_path, rendered.html)
    for fallback in rendered.fallbacks:
        logging.warning("Fallback rendering for block %s", fallback)
    logging.info("Done. Saved to %s", output_path)
    return 0


def cmd_export_docx(args, input_path: Path, settings: EditorSettings) -> int:
    document = _input_codec(args, input_path, settings).parse(read_text(input_path))
    output_path = resolve_output_path(input_path, args.output, ".docx")
    logging.info("Rendering DOCX to %s", output_path)
    fallbacks = renderer_docx.render_document(
        document,
        output_path=output_path,
        resources=ResourceMap.from_document(document),
        asset_root=settings.asset_root or input_path.parent,
    )
    for fallback in fallbacks:
        logging.warning("Fallback rendering for block %s", fallback)
    logging.info("Done. Saved to %s", output_path)
    return 0


def cmd_import_markdown(args, input_path: Path, settings: EditorSettings) -> int:
    target = args.to or settings.raw_format
    output_path = resolve_output_path(input_path, args.output, ".yaml" if target == "yaml" else ".json")
    logging.info("Reading %s", input_path)
    markdown_text = read_text(input_path)
    logging.debug("Markdown length: %d chars", len(markdown_text))

    logging.info("Parsing markdown...")
    document = markdown_parser.parse_markdown(markdown_text, default_language=settings.default_language)

    write_text(output_path, _codec(target, settings).serialize(document))
    logging.info("Done. Saved %d blocks to %s", len(document.blocks), output_path)
    return 0


def cmd_convert(args, input_path: Path, settings: EditorSettings) -> int:
    document = _input_codec(args, input_path, settings).parse(read_text(input_path))
    output_path = resolve_output_path(input_path, args.output, ".yaml" if args.to == "yaml" else ".json")
    if output_path == input_path:
        raise ValueError(f"Refusing to overwrite input file {input_path}")
    write_text(output_path, _codec(args.to, settings).serialize(document))
    logging.info("Done. Saved to %s", output_path)
    return 0


COMMANDS = {
    "validate": cmd_validate,
    "render": cmd_render,
    "export-docx": cmd_export_docx,
    "import-markdown": cmd_import_markdown,
    "convert": cmd_convert,
}


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""
DBML Canvas - Command Line Converter
Converts DBML / SQL / JSON schema files to DBML, SQL, JSON, images or documentation
"""
import argparse
import sys
from pathlib import Path

from .core import DiagramSession, SQL_DIALECTS, generate_json, generate_sql, import_content
from .core.doc_generator import generate_docx, generate_html
from .core.visualization import render_diagram_image

OUTPUT_FORMATS = ('dbml', 'sql', 'json', 'png', 'svg', 'html', 'docx')
BINARY_FORMATS = ('png', 'svg', 'docx')


def convert(content: str, to: str, filename: str = None, dialect: str = 'postgresql', output: str = None):
    """
    Convert schema content to the requested format

    Args:
        content: DBML, SQL or JSON text
        to: One of OUTPUT_FORMATS
        filename: Original filename, used to pick the importer
        dialect: SQL dialect for --to sql
        output: Output path; text formats go to stdout when omitted

    Returns:
        The output path, or None when text was written to stdout
    """
    print("🔍 Importing schema...", file=sys.stderr)
    result = import_content(content, filename)
    if not result.success:
        raise ValueError(result.error)

    session = DiagramSession(result.dbml_code, result.node_positions)
    schema = session.schema
    print(f"✅ Found {len(schema.tables)} table(s), {len(schema.relationships)} relationship(s)",
          file=sys.stderr)

    if to in BINARY_FORMATS and not output:
        output = f"schema.{to}"

    if to == 'docx':
        return generate_docx(schema, output)

    if to in ('png', 'svg'):
        print("\n🎨 Rendering diagram...", file=sys.stderr)
        image, error = render_diagram_image(session, to)
        if error:
            raise RuntimeError(error)
        Path(output).write_bytes(image)
        return output

    if to == 'sql':
        text = generate_sql(schema, dialect)
    elif to == 'json':
        text = generate_json(session.dbml_code, schema, session.node_positions())
    elif to == 'html':
        text = generate_html(schema)
    else:
        text = session.dbml_code

    if output:
        Path(output).write_text(text, encoding='utf-8')
        return output
    sys.stdout.write(text if text.endswith('\n') else text + '\n')
    return None


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Convert DBML, SQL or JSON schema files to other formats"
    )
    parser.add_argument(
        "input",
        help="Schema file path (.dbml, .sql, .json) or '-' for stdin"
    )
    parser.add_argument(
        "--to",
        choices=OUTPUT_FORMATS,
        default="sql",
        help="Output format"
    )
    parser.add_argument(
        "--dialect",
        choices=SQL_DIALECTS,
        default="postgresql",
        help="SQL dialect for --to sql"
    )
    parser.add_argument(
        "-o", "--output",
        help="Output file path (text formats print to stdout by default)"
    )

    args = parser.parse_args(argv)

    # Read input content
    if args.input == "-":
        print("📝 Reading schema from stdin (press Ctrl+D when done)...", file=sys.stderr)
        content = sys.stdin.read()
        filename = None
    else:
        input_path = Path(args.input)
        if not input_path.exists():
            print(f"❌ Error: File not found: {args.input}", file=sys.stderr)
            sys.exit(1)

        print(f"📝 Reading schema from: {args.input}", file=sys.stderr)
        content = input_path.read_text(encoding='utf-8')
        filename = input_path.name

    try:
        output_path = convert(content, args.to, filename, args.dialect, args.output)
    except Exception as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if output_path:
        print(f"\n✅ Saved to: {output_path}", file=sys.stderr)


if __name__ == "__main__":
    main()

"""Command-line interface for pcb-idx."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .errors import IdxError


def _require(path_arg: str) -> Path:
    path = Path(path_arg)
    if not path.exists():
        print(f"Error: Input file not found: {path}", file=sys.stderr)
        sys.exit(1)
    return path


def _parse_layer_map(items: list[str] | None) -> dict[str, str] | None:
    """Turn ``LAYER=ROLE`` arguments into a dict."""
    if not items:
        return None
    layer_map = {}
    for item in items:
        if "=" not in item:
            print(f"Error: Invalid layer map entry (expected LAYER=ROLE): {item}",
                  file=sys.stderr)
            sys.exit(1)
        key, value = item.split("=", 1)
        layer_map[key] = value
    return layer_map


def _export_config(args: argparse.Namespace):
    """ExportConfig from ``--config`` with command-line overrides applied."""
    from .config import ExportConfig, NumberFormatting, load_config

    config = load_config(args.config) if args.config else ExportConfig()
    if args.traditional:
        config.build.use_simplified = False
    if args.compress:
        config.compress = True
    if args.no_comments:
        config.write.enable_comments = False
    if args.compact:
        config.write.pretty_print = False
    if args.decimals is not None:
        config.write.number_formatting = NumberFormatting(
            decimal_places=args.decimals,
            remove_trailing_zeros=config.write.number_formatting.remove_trailing_zeros,
        )
    if args.system_scope:
        config.build.system_scope = args.system_scope
    if args.non_collaborative:
        config.build.include_non_collaborative = True
    return config


def _write_export(design, args: argparse.Namespace, default_stem: Path) -> None:
    from .exporter import IdxExporter

    config = _export_config(args)
    exporter = IdxExporter(config)
    if args.output:
        output = Path(args.output)
    else:
        output = default_stem.with_suffix(".idz" if config.compress else ".idx")
    result = exporter.export(design, output)
    if not result.success:
        for issue in result.issues:
            print(f"Error: {issue}", file=sys.stderr)
        sys.exit(1)

    stats = result.statistics
    print(f"Wrote {result.file.path}", file=sys.stderr)
    print(f"  Layers:     {stats.layers}", file=sys.stderr)
    print(f"  Items:      {stats.total_items}", file=sys.stderr)
    print(f"  Components: {stats.components}", file=sys.stderr)
    print(f"  Holes:      {stats.holes}", file=sys.stderr)
    print(f"  Keepouts:   {stats.keepouts}", file=sys.stderr)
    print(f"  Size:       {stats.file_size} bytes", file=sys.stderr)


# --- Subcommand handlers ---


def _cmd_export(args: argparse.Namespace) -> None:
    """Handle the export subcommand."""
    from .design_reader import load_design

    input_path = _require(args.input)
    design = load_design(input_path)
    _write_export(design, args, input_path)


def _cmd_import_dxf(args: argparse.Namespace) -> None:
    """Handle the import-dxf subcommand."""
    from .dxf_reader import design_from_dxf

    input_path = _require(args.input)
    try:
        design = design_from_dxf(
            input_path,
            layer_map=_parse_layer_map(args.layer_map),
            unit=args.unit,
            thickness=args.thickness,
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Imported DXF entities from: {input_path.name}", file=sys.stderr)
    print(f"  Cutouts:  {len(design.board.cutouts)}", file=sys.stderr)
    print(f"  Holes:    {len(design.holes)}", file=sys.stderr)
    print(f"  Keepouts: {len(design.constraints)}", file=sys.stderr)

    if args.json:
        from .design_reader import save_design

        output = Path(args.output) if args.output else input_path.with_suffix(".json")
        save_design(design, output)
        print(f"Wrote {output}", file=sys.stderr)
        return
    _write_export(design, args, input_path)


def _cmd_inspect(args: argparse.Namespace) -> None:
    """Handle the inspect subcommand."""
    from .dxf_reader import read_dxf

    inventory = read_dxf(_require(args.input))

    print(f"DXF File: {inventory.filepath}")
    print(f"Version:  {inventory.dxf_version}")
    print(f"Units:    {inventory.units or 'not specified'}")
    print()

    if inventory.bounding_box:
        lo, hi = inventory.bounding_box
        print(f"Bounding box: ({lo.x:.3f}, {lo.y:.3f}) to ({hi.x:.3f}, {hi.y:.3f})")
        print(f"Extent:       {hi.x - lo.x:.3f} x {hi.y - lo.y:.3f}")
        print()

    print("Layers:")
    for name in sorted(inventory.layers):
        print(f"  {name:30s} {inventory.layers[name]:5d} entities")
    print()

    print("Entity types:")
    for etype in sorted(inventory.entity_counts):
        print(f"  {etype:20s} {inventory.entity_counts[etype]:5d}")
    print()
    print(f"Total entities: {sum(inventory.entity_counts.values())}")


def _cmd_audit(args: argparse.Namespace) -> None:
    """Handle the audit subcommand."""
    import xml.etree.ElementTree as ET

    from .audit import audit_file, format_report

    input_path = _require(args.input)
    try:
        report = audit_file(input_path)
    except ET.ParseError as exc:
        print(f"Error: {input_path} is not well-formed XML: {exc}", file=sys.stderr)
        sys.exit(1)
    print(format_report(report))
    if not report.ok:
        sys.exit(1)


def _add_export_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o", "--output",
        help="Output file path (default: input name with .idx/.idz extension)",
    )
    parser.add_argument(
        "--config",
        help="JSON export configuration file",
    )
    parser.add_argument(
        "--traditional",
        action="store_true",
        help="Wrap shapes in strata and features instead of geometryType attributes",
    )
    parser.add_argument(
        "--compress",
        action="store_true",
        help="Write a zipped .idz archive",
    )
    parser.add_argument(
        "--no-comments",
        action="store_true",
        help="Omit section comments",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Do not indent the XML",
    )
    parser.add_argument(
        "--decimals",
        type=int,
        metavar="N",
        help="Decimal places for numbers (default: 3)",
    )
    parser.add_argument(
        "--system-scope",
        help="SystemScope written on identifiers and properties",
    )
    parser.add_argument(
        "--non-collaborative",
        action="store_true",
        help="Also export traces, copper areas and silkscreen",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pcb-idx",
        description="Export PCB designs as IDX (EDMD) baseline files.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v info, -vv debug)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- export subcommand ---
    p_export = subparsers.add_parser(
        "export",
        help="Export a JSON design file to IDX.",
    )
    p_export.add_argument("input", help="Path to the design JSON file")
    _add_export_options(p_export)
    p_export.set_defaults(func=_cmd_export)

    # --- import-dxf subcommand ---
    p_import = subparsers.add_parser(
        "import-dxf",
        help="Convert a mechanical DXF outline to IDX.",
    )
    p_import.add_argument("input", help="Path to the DXF file")
    _add_export_options(p_import)
    p_import.add_argument(
        "--layer-map",
        nargs="*",
        metavar="LAYER=ROLE",
        help="Map DXF layer names to roles (outline, cutout, hole, keepout, annotation)",
    )
    p_import.add_argument(
        "--unit",
        choices=["mm", "in", "mil"],
        help="Force unit interpretation (default: auto-detect)",
    )
    p_import.add_argument(
        "--thickness",
        type=float,
        default=1.6,
        help="Board thickness in mm (default: 1.6)",
    )
    p_import.add_argument(
        "--json",
        action="store_true",
        help="Write the intermediate design JSON instead of IDX",
    )
    p_import.set_defaults(func=_cmd_import_dxf)

    # --- inspect subcommand ---
    p_inspect = subparsers.add_parser(
        "inspect",
        help="Inspect a DXF file and print entity/layer summary.",
    )
    p_inspect.add_argument("input", help="Path to the DXF file")
    p_inspect.set_defaults(func=_cmd_inspect)

    # --- audit subcommand ---
    p_audit = subparsers.add_parser(
        "audit",
        help="Summarize an IDX file and check its references.",
    )
    p_audit.add_argument("input", help="Path to the .idx or .idz file")
    p_audit.set_defaults(func=_cmd_audit)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except IdxError as exc:
        print(f"Error: {exc.kind}: {exc}", file=sys.stderr)
        sys.exit(1)

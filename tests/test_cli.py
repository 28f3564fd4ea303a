"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import ezdxf
import pytest

from pcb_idx.cli import main
from pcb_idx.design_reader import load_design, save_design


def _design_file(tmp_path: Path, design) -> Path:
    path = tmp_path / "design.json"
    save_design(design, path)
    return path


def _outline_dxf(tmp_path: Path) -> Path:
    doc = ezdxf.new("R2010", units=4)
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (60, 0), (60, 40), (0, 40)], format="xy", close=True,
                       dxfattribs={"layer": "Outline"})
    msp.add_circle((5, 5), 1.6, dxfattribs={"layer": "Holes"})
    path = tmp_path / "outline.dxf"
    doc.saveas(path)
    return path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as info:
        main(argv)
    return info.value.code


class TestExport:
    """Test the export subcommand."""

    def test_export(self, design, tmp_path, capsys):
        src = _design_file(tmp_path, design)
        out = tmp_path / "out.idx"
        main(["export", str(src), "-o", str(out)])
        assert out.read_text(encoding="utf-8").startswith("<?xml")
        err = capsys.readouterr().err
        assert f"Wrote {out}" in err
        assert "Components: 1" in err

    def test_default_output_name(self, board_design, tmp_path):
        src = _design_file(tmp_path, board_design)
        main(["export", str(src), "--compress"])
        assert (tmp_path / "design.idz").exists()

    def test_write_options(self, design, tmp_path):
        src = _design_file(tmp_path, design)
        out = tmp_path / "out.idx"
        main(["export", str(src), "-o", str(out), "--traditional", "--compact",
              "--no-comments", "--system-scope", "ACME"])
        text = out.read_text(encoding="utf-8")
        assert "<!--" not in text
        assert "geometryType" not in text
        assert "<foundation:SystemScope>ACME</foundation:SystemScope>" in text

    def test_config_file(self, board_design, tmp_path):
        src = _design_file(tmp_path, board_design)
        config = tmp_path / "export.json"
        config.write_text(json.dumps({"write": {"enable_comments": False}}),
                          encoding="utf-8")
        out = tmp_path / "out.idx"
        main(["export", str(src), "-o", str(out), "--config", str(config)])
        assert "<!--" not in out.read_text(encoding="utf-8")

    def test_missing_input(self, tmp_path, capsys):
        assert _exit_code(["export", str(tmp_path / "nope.json")]) == 1
        assert "Error: Input file not found" in capsys.readouterr().err

    def test_bad_design(self, tmp_path, capsys):
        src = tmp_path / "design.json"
        src.write_text(json.dumps({"metadata": {}, "board": {}, "extra": 1}),
                       encoding="utf-8")
        assert _exit_code(["export", str(src)]) == 1
        assert "Error: ConfigurationError: Unknown key(s): extra" in capsys.readouterr().err

    def test_compress_with_idx_output(self, board_design, tmp_path):
        src = _design_file(tmp_path, board_design)
        main(["export", str(src), "-o", str(tmp_path / "out.idx"), "--compress"])
        assert (tmp_path / "out.idz").exists()
        assert not (tmp_path / "out.idx").exists()

    def test_non_numeric_thickness(self, design, tmp_path, capsys):
        src = _design_file(tmp_path, design)
        data = json.loads(src.read_text(encoding="utf-8"))
        data["layers"][0]["thickness"] = "0.035"
        src.write_text(json.dumps(data), encoding="utf-8")
        assert _exit_code(["export", str(src), "-o", str(tmp_path / "out.idx")]) == 1
        assert "Error: ConfigurationError: Expected a number" in capsys.readouterr().err

    def test_build_failure(self, design, tmp_path, capsys):
        design.components[0].package_name = "MISSING"
        src = _design_file(tmp_path, design)
        out = tmp_path / "out.idx"
        assert _exit_code(["export", str(src), "-o", str(out)]) == 1
        assert "Error: ReferenceError: " in capsys.readouterr().err
        assert not out.exists()


class TestImportDxf:
    """Test the import-dxf subcommand."""

    def test_to_idx(self, tmp_path, capsys):
        src = _outline_dxf(tmp_path)
        main(["import-dxf", str(src)])
        text = (tmp_path / "outline.idx").read_text(encoding="utf-8")
        assert 'geometryType="BOARD_OUTLINE"' in text
        err = capsys.readouterr().err
        assert "Holes:    1" in err

    def test_to_json(self, tmp_path):
        src = _outline_dxf(tmp_path)
        out = tmp_path / "board.json"
        main(["import-dxf", str(src), "--json", "-o", str(out), "--thickness", "0.8"])
        design = load_design(out)
        assert design.board.thickness == 0.8
        assert [h.name for h in design.holes] == ["H1"]

    def test_layer_map(self, tmp_path):
        src = _outline_dxf(tmp_path)
        out = tmp_path / "board.json"
        main(["import-dxf", str(src), "--json", "-o", str(out),
              "--layer-map", "Outline=outline"])
        assert load_design(out).holes == []

    def test_bad_layer_map(self, tmp_path, capsys):
        src = _outline_dxf(tmp_path)
        assert _exit_code(["import-dxf", str(src), "--layer-map", "Outline"]) == 1
        assert "expected LAYER=ROLE" in capsys.readouterr().err

    def test_no_outline(self, tmp_path, capsys):
        doc = ezdxf.new("R2010", units=4)
        doc.modelspace().add_circle((0, 0), 1.0, dxfattribs={"layer": "Holes"})
        src = tmp_path / "holes.dxf"
        doc.saveas(src)
        assert _exit_code(["import-dxf", str(src)]) == 1
        assert "No closed board outline" in capsys.readouterr().err


class TestInspect:

    def test_summary(self, tmp_path, capsys):
        main(["inspect", str(_outline_dxf(tmp_path))])
        out = capsys.readouterr().out
        assert "DXF File:" in out
        assert "Units:    mm" in out
        assert "Layers:" in out
        assert "Extent:       60.000 x 40.000" in out
        assert "Total entities: 2" in out


class TestAudit:

    def test_clean(self, design, tmp_path, capsys):
        src = _design_file(tmp_path, design)
        out = tmp_path / "out.idx"
        main(["export", str(src), "-o", str(out)])
        capsys.readouterr()
        main(["audit", str(out)])
        assert "References: all resolved" in capsys.readouterr().out

    def test_dangling(self, tmp_path):
        path = tmp_path / "bad.idx"
        path.write_text(
            '<foundation:EDMDDataSet xmlns:foundation="http://www.prostep.org/EDMD/Foundation"'
            ' xmlns:d2="http://www.prostep.org/EDMD/2D">'
            "<foundation:Body><d2:PolyLine id=\"GEO_1\"><d2:Point>PT_9</d2:Point>"
            "</d2:PolyLine></foundation:Body></foundation:EDMDDataSet>",
            encoding="utf-8",
        )
        assert _exit_code(["audit", str(path)]) == 1

    def test_not_xml(self, tmp_path, capsys):
        path = tmp_path / "bad.idx"
        path.write_text("not xml", encoding="utf-8")
        assert _exit_code(["audit", str(path)]) == 1
        assert "not well-formed" in capsys.readouterr().err


class TestMain:

    def test_no_command(self, capsys):
        assert _exit_code([]) == 1
        assert "usage:" in capsys.readouterr().out

    def test_version(self, capsys):
        assert _exit_code(["--version"]) == 0
        assert capsys.readouterr().out.startswith("pcb-idx ")

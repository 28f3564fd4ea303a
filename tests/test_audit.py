"""Tests for reading back and checking emitted IDX files."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from pcb_idx.audit import audit_file, format_report
from pcb_idx.config import BuildConfig, ExportConfig
from pcb_idx.exporter import IdxExporter

_HEAD = (
    '<foundation:EDMDDataSet xmlns:foundation="http://www.prostep.org/EDMD/Foundation" '
    'xmlns:d2="http://www.prostep.org/EDMD/2D" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
    '<foundation:Body xsi:type="foundation:EDMDDataSetBody">'
)
_TAIL = "</foundation:Body></foundation:EDMDDataSet>"


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "hand.idx"
    path.write_text(_HEAD + body + _TAIL, encoding="utf-8")
    return path


class TestExportedFiles:
    """Files produced by the exporter audit clean."""

    @pytest.mark.parametrize("simplified", [True, False])
    def test_clean(self, design, tmp_path, simplified):
        config = ExportConfig(build=BuildConfig(use_simplified=simplified))
        out = tmp_path / "board.idx"
        IdxExporter(config).export(design, out)
        report = audit_file(out)
        assert report.ok
        assert report.ids > 0
        assert report.tags["foundation:CartesianPoint"] > 0
        assert report.xsi_types["d2:EDMDCurveSet2d"] == report.tags["foundation:CurveSet2d"]
        if simplified:
            assert report.geometry_types["BOARD_AREA_RIGID"] == 1
        else:
            assert not report.geometry_types

    def test_idz(self, board_design, tmp_path):
        out = tmp_path / "board.idz"
        IdxExporter(ExportConfig(compress=True)).export(board_design, out)
        report = audit_file(out)
        assert report.ok
        assert report.geometry_types["BOARD_OUTLINE"] == 1


class TestHandWritten:

    def test_dangling(self, tmp_path):
        path = _write(tmp_path, (
            '<d2:PolyLine id="GEO_1" xsi:type="d2:EDMDPolyLine">'
            "<d2:Point>PT_404</d2:Point></d2:PolyLine>"
        ))
        report = audit_file(path)
        assert not report.ok
        ref = report.bad_references[0]
        assert (ref.tag, ref.target, ref.problem) == ("d2:Point", "PT_404", "dangling")

    def test_forward(self, tmp_path):
        path = _write(tmp_path, (
            '<d2:PolyLine id="GEO_1" xsi:type="d2:EDMDPolyLine">'
            "<d2:Point>PT_1</d2:Point></d2:PolyLine>"
            '<foundation:CartesianPoint id="PT_1" xsi:type="d2:EDMDCartesianPoint"/>'
        ))
        report = audit_file(path)
        assert [r.problem for r in report.bad_references] == ["forward"]
        text = format_report(report)
        assert "1 problem(s)" in text
        assert "forward   d2:Point -> PT_1" in text

    def test_resolved(self, tmp_path):
        path = _write(tmp_path, (
            '<foundation:CartesianPoint id="PT_1" xsi:type="d2:EDMDCartesianPoint"/>'
            '<d2:PolyLine id="GEO_1" xsi:type="d2:EDMDPolyLine">'
            "<d2:Point>PT_1</d2:Point></d2:PolyLine>"
        ))
        report = audit_file(path)
        assert report.ok
        assert report.ids == 2
        assert "References: all resolved" in format_report(report)

    def test_malformed(self, tmp_path):
        path = tmp_path / "bad.idx"
        path.write_text("<foundation:EDMDDataSet", encoding="utf-8")
        with pytest.raises(ET.ParseError):
            audit_file(path)

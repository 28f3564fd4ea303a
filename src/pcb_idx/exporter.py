"""Build, serialize and write IDX baseline files.

The exporter ties the builder and serializer together and handles the only
I/O in the pipeline. A file is written only after the complete XML string
exists, so a failed export leaves nothing on disk.
"""

from __future__ import annotations

import logging
import time
import zipfile
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path

from .builder import IdxBuilder
from .config import ExportConfig
from .document import Document
from .errors import IdxError
from .models import ConstraintType, EcadDesign
from .serializer import IdxSerializer

log = logging.getLogger(__name__)

EXPORT_TYPE = "baseline"


@dataclass
class FileMetadata:
    name: str
    path: str
    timestamp: str
    sequence: int
    design_name: str


@dataclass
class ExportStatistics:
    layers: int = 0
    total_items: int = 0
    components: int = 0
    holes: int = 0
    keepouts: int = 0
    file_size: int = 0
    export_duration_ms: float = 0.0


@dataclass
class ExportResult:
    success: bool
    file: FileMetadata | None = None
    statistics: ExportStatistics = field(default_factory=ExportStatistics)
    issues: list[str] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class IdxExporter:
    """Export ECAD designs to ``.idx`` / ``.idz`` files.

    Args:
        config: Export options. ``design_name`` falls back to the design's
            metadata name.
    """

    def __init__(self, config: ExportConfig | None = None):
        self.config = config or ExportConfig()

    def _stamped(self, design: EcadDesign) -> EcadDesign:
        """Fill a blank creation time with the current UTC time."""
        if design.metadata.created:
            return design
        return replace(design, metadata=replace(design.metadata, created=_now()))

    def build(self, design: EcadDesign) -> Document:
        builder = IdxBuilder(
            self.config.build,
            creator_system=self.config.creator_system,
            creator_company=self.config.creator_company,
        )
        return builder.build(design)

    def export_string(self, design: EcadDesign) -> str:
        """Return the IDX XML for ``design`` without touching the filesystem."""
        document = self.build(self._stamped(design))
        return IdxSerializer(self.config.write).serialize(document)

    def file_name(self, design: EcadDesign) -> str:
        cfg = self.config
        stem = cfg.naming_pattern.format(
            design_name=cfg.design_name or design.metadata.design_name,
            type=EXPORT_TYPE,
            sequence=cfg.sequence,
        )
        return f"{stem}.idz" if cfg.compress else f"{stem}.idx"

    def export(self, design: EcadDesign, output: str | Path | None = None) -> ExportResult:
        """Write ``design`` to disk.

        Args:
            design: The design to export.
            output: Explicit output path; defaults to ``config.directory``
                joined with the name produced by ``naming_pattern``. With
                ``config.compress`` the suffix is forced to ``.idz``.

        Returns:
            An ExportResult. On failure ``success`` is False, ``issues``
            holds the error and no file is written.
        """
        started = time.perf_counter()
        cfg = self.config
        try:
            stamped = self._stamped(design)
            document = self.build(stamped)
            xml = IdxSerializer(cfg.write).serialize(document)
        except IdxError as exc:
            log.error("Export of %s failed: %s", design.metadata.design_name, exc)
            return ExportResult(success=False, issues=[f"{exc.kind}: {exc}"])

        path = Path(output) if output is not None else Path(cfg.directory) / self.file_name(design)
        if cfg.compress and path.suffix.lower() != ".idz":
            log.warning("compress is set; writing %s instead of %s", path.with_suffix(".idz").name,
                        path.name)
            path = path.with_suffix(".idz")
        path.parent.mkdir(parents=True, exist_ok=True)
        data = xml.encode("utf-8")
        if path.suffix.lower() == ".idz":
            member = path.with_suffix(".idx").name
            with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                zf.writestr(member, data)
        else:
            path.write_bytes(data)
        log.info("Wrote %s (%d bytes)", path, path.stat().st_size)

        body = document.body
        stats = ExportStatistics(
            layers=len(design.layers),
            total_items=len(body.layers) + len(body.packages) + len(body.item_singles)
            + len(body.item_assemblies),
            components=len(design.components),
            holes=len(design.holes),
            keepouts=sum(1 for c in design.constraints if c.type is ConstraintType.KEEPOUT),
            file_size=path.stat().st_size,
            export_duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        metadata = FileMetadata(
            name=path.name,
            path=str(path),
            timestamp=stamped.metadata.created,
            sequence=cfg.sequence,
            design_name=cfg.design_name or design.metadata.design_name,
        )
        return ExportResult(success=True, file=metadata, statistics=stats,
                            issues=list(document.warnings))

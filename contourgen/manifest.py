"""Tileset `metadata.json` manifest written once per run."""

import json, logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path


WORLD_BOUNDS = "-180,-85.051129,180,85.051129"
MANIFEST_FILE_NAME = "metadata.json"


@dataclass(frozen=True)
class RunManifest:
    """MBTiles-style metadata for the generated contour tileset."""

    minzoom: int
    maxzoom: int
    format: str = "pbf"
    bounds: str = WORLD_BOUNDS
    layer: str = "contours"
    fields: dict = field(default_factory=lambda: {"ele": "Number", "level": "Number"})

    def __post_init__(self):
        assert 0 <= self.minzoom <= self.maxzoom, f"invalid zoom range {self.minzoom}-{self.maxzoom}"

    @property
    def vector_layers(self) -> list[dict]:
        return [
            {
                "id": self.layer,
                "fields": dict(self.fields),
                "minzoom": self.minzoom,
                "maxzoom": self.maxzoom,
            }
        ]

    def to_dict(self, created: datetime | None = None) -> dict[str, str]:
        created = created or datetime.now(timezone.utc)
        return {
            "name": f"Contour_z{self.minzoom}_Z{self.maxzoom}",
            "type": "baselayer",
            "description": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "version": "1",
            "format": self.format,
            "minzoom": str(self.minzoom),
            "maxzoom": str(self.maxzoom),
            "json": json.dumps({"vector_layers": self.vector_layers}),
            "bounds": self.bounds,
        }


def write_manifest(output_dir: str | Path, manifest: RunManifest, logger=None) -> Path:
    """Write `metadata.json` into `output_dir` and return its path."""
    log = logger or logging.getLogger(__name__)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest_fp = output_dir / MANIFEST_FILE_NAME
    manifest_fp.write_text(json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8")
    log.info(f"wrote tileset manifest\n    {manifest_fp}")
    return manifest_fp

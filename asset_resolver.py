"""Map mesh references inside a robot description onto uploaded files.

Uploaded blobs are kept as files in a private temporary directory so that mesh
loaders can open them by path. Each blob is addressed by a ``BlobHandle`` that
also carries a ``blob://<map-id>/<name>`` URI; a description that already
points at such a URI resolves back to the same handle.
"""

import io
import logging
import shutil
import tempfile
import uuid
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
from urllib.parse import unquote, urlparse

from errors import AssetLoadError

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob:"
PACKAGE_SCHEME = "package://"
DESCRIPTION_SUFFIXES = (".urdf", ".xml")
MESH_SUFFIXES = (".stl", ".obj", ".dae", ".gltf", ".glb")


@dataclass
class BlobHandle:
    name: str
    path: Path
    uri: str
    size: int
    released: bool = False

    def read_bytes(self) -> bytes:
        if self.released:
            raise AssetLoadError(f"Blob {self.name} has been released")
        return self.path.read_bytes()

    def release(self) -> None:
        if self.released:
            return
        self.path.unlink(missing_ok=True)
        self.released = True


class AssetBlobMap(Mapping):
    """Uploaded filename -> BlobHandle, keys case-preserved exactly as provided."""

    def __init__(self, root_dir: Optional[Union[str, Path]] = None):
        self.map_id = uuid.uuid4().hex[:12]
        self._owns_root = root_dir is None
        self._root = Path(root_dir) if root_dir is not None else Path(tempfile.mkdtemp(prefix="urdf-assets-"))
        self._root.mkdir(parents=True, exist_ok=True)
        self._handles: Dict[str, BlobHandle] = {}

    def __getitem__(self, key: str) -> BlobHandle:
        return self._handles[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handles)

    def __len__(self) -> int:
        return len(self._handles)

    def __repr__(self) -> str:
        return f"AssetBlobMap(id={self.map_id}, keys={list(self._handles)})"

    def add(self, name: str, data: bytes) -> BlobHandle:
        previous = self._handles.get(name)
        if previous is not None:
            previous.release()
        # Keep the suffix so mesh loaders can detect the file type.
        path = self._root / f"{uuid.uuid4().hex}{Path(name).suffix.lower()}"
        path.write_bytes(data)
        handle = BlobHandle(
            name=name,
            path=path,
            uri=f"blob://{self.map_id}/{name}",
            size=len(data),
        )
        self._handles[name] = handle
        logger.debug("Stored blob %r (%d bytes)", name, len(data))
        return handle

    def release(self) -> None:
        for handle in self._handles.values():
            handle.release()
        count = len(self._handles)
        self._handles.clear()
        if self._owns_root:
            shutil.rmtree(self._root, ignore_errors=True)
        logger.info("Released %d asset blobs", count)

    @classmethod
    def from_files(cls, paths: Iterable[Union[str, Path]]) -> "AssetBlobMap":
        blob_map = cls()
        try:
            for path in paths:
                path = Path(path)
                blob_map.add(path.name, path.read_bytes())
        except OSError as exc:
            blob_map.release()
            raise AssetLoadError(f"Error reading mesh file: {exc}") from exc
        return blob_map

    @classmethod
    def from_archive(cls, archive: Union[str, Path, bytes]) -> Tuple[bytes, str, "AssetBlobMap"]:
        """Extract a ZIP upload.

        Returns the first robot description found, its archive path and a blob
        map of all mesh entries keyed by their separator-normalized path.
        """
        source = io.BytesIO(archive) if isinstance(archive, (bytes, bytearray)) else archive
        blob_map = cls()
        description: Optional[bytes] = None
        description_name = ""
        try:
            with zipfile.ZipFile(source) as zf:
                for info in zf.infolist():
                    if info.is_dir():
                        continue
                    entry = info.filename.replace("\\", "/")
                    lower = entry.lower()
                    if lower.endswith(DESCRIPTION_SUFFIXES):
                        if description is None:
                            description = zf.read(info)
                            description_name = entry
                            logger.info("Using %s as robot description", entry)
                        else:
                            logger.info("Ignoring additional description %s", entry)
                    elif lower.endswith(MESH_SUFFIXES):
                        blob_map.add(entry, zf.read(info))
        except (zipfile.BadZipFile, OSError) as exc:
            blob_map.release()
            raise AssetLoadError(f"Error processing ZIP file: {exc}") from exc

        if description is None:
            blob_map.release()
            raise AssetLoadError("No .urdf or .xml file found in the ZIP archive.")
        return description, description_name, blob_map


def _strip_handle(reference: str) -> str:
    if not reference.startswith(BLOB_SCHEME):
        return reference
    # blob://<map-id>/<path> and blob:http://host/<path> both carry the path last.
    parsed = urlparse(reference[len(BLOB_SCHEME):])
    return unquote(parsed.path)


def normalize_reference(reference: str) -> str:
    key = _strip_handle(reference)

    if key.startswith(PACKAGE_SCHEME):
        parts = key[len(PACKAGE_SCHEME):].split("/", 1)
        key = parts[1] if len(parts) > 1 else ""
    elif "://" in key:
        key = key.split("://", 1)[1]

    key = key.replace("\\", "/")
    while key.startswith("./") or key.startswith("../"):
        key = key[2:] if key.startswith("./") else key[3:]
    if key.startswith("/"):
        key = key[1:]
    return key


def candidate_keys(reference: str) -> List[str]:
    normalized = normalize_reference(reference)
    basename = normalized.split("/")[-1]
    candidates: List[str] = []
    for key in (normalized, normalized.lower(), basename, basename.lower()):
        if key and key not in candidates:
            candidates.append(key)
    return candidates


def resolve_asset(reference: str, blob_map: Optional[Mapping]) -> Union[BlobHandle, str]:
    """Return the uploaded blob for a mesh reference, or the reference itself.

    The first candidate key present in ``blob_map`` wins. When nothing matches
    the original string is returned unchanged so the caller can still try it
    as a direct path.
    """
    candidates = candidate_keys(reference)
    if blob_map:
        for key in candidates:
            if key in blob_map:
                logger.debug("Resolved %r using key %r", reference, key)
                return blob_map[key]

    available = list(blob_map.keys()) if blob_map else []
    logger.warning(
        "Asset not found for %r; tried %s; available keys: %s",
        reference,
        candidates,
        available,
    )
    return reference

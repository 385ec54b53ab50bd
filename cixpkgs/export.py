"""Write an assembled image to disk as a deterministic archive.

The archive holds two members:

    manifest.json   layers (store paths + digests), config, scaffold index
    scaffold.tar    the customisation layer: the real scaffold files with
                    their modes and ownership

Artifact contents are not copied; the manifest names them by store
path and a loader pulls them from the store, the same split nixpkgs
uses between the image config and stream-layered-image. Every tar
member has mtime 0 and no user/group names, so exporting the same
ImageSpec twice produces identical bytes.
"""

import io
import json
import logging
import tarfile
from pathlib import Path

from cixpkgs.image import ImageSpec
from cixpkgs.scaffold import DIRECTORY, SYMLINK

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


def manifest(spec: ImageSpec) -> dict:
    """JSON-ready description of ``spec``."""
    entries = []
    for e in spec.scaffold:
        item = {"path": e.path, "type": e.kind, "mode": f"{e.mode:04o}", "uid": e.uid, "gid": e.gid}
        if e.kind == SYMLINK:
            item["target"] = e.target
        entries.append(item)
    return {
        "manifestVersion": MANIFEST_VERSION,
        "name": spec.name,
        "tag": spec.tag,
        "role": spec.role.value,
        "snapshot": spec.snapshot,
        "maxLayers": spec.max_layers,
        "layers": [{"digest": layer.digest, "paths": list(layer.paths)} for layer in spec.layers],
        "scaffold": {
            "storePath": spec.scaffold_path,
            "digest": spec.scaffold.digest,
            "entries": entries,
        },
        "config": spec.config.as_dict(),
    }


def _tarinfo(name: str) -> tarfile.TarInfo:
    info = tarfile.TarInfo(name=name)
    info.mtime = 0
    info.uname = ""
    info.gname = ""
    return info


def scaffold_tar(spec: ImageSpec) -> bytes:
    """The scaffold as an uncompressed tar layer."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.PAX_FORMAT) as tar:
        for e in spec.scaffold:
            info = _tarinfo("." + e.path)
            info.mode = e.mode
            info.uid = e.uid
            info.gid = e.gid
            if e.kind == DIRECTORY:
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
            elif e.kind == SYMLINK:
                info.type = tarfile.SYMTYPE
                info.linkname = e.target
                tar.addfile(info)
            else:
                data = e.content.encode()
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def archive_name(spec: ImageSpec) -> str:
    return f"{spec.name.rsplit('/', 1)[-1]}-{spec.tag}.tar"


def write_image(spec: ImageSpec, out_dir: str | Path) -> Path:
    """Write ``spec`` to ``out_dir/<name>-<tag>.tar``. Returns the path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / archive_name(spec)

    members = [
        ("manifest.json", (json.dumps(manifest(spec), indent=2, sort_keys=True) + "\n").encode()),
        ("scaffold.tar", scaffold_tar(spec)),
    ]
    with tarfile.open(path, mode="w", format=tarfile.PAX_FORMAT) as tar:
        for name, payload in members:
            info = _tarinfo(name)
            info.size = len(payload)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(payload))

    logger.info("wrote %s", path)
    return path

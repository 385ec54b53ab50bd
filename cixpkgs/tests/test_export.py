"""Tests for manifest generation and archive export."""

import io
import json
import tarfile

from cixpkgs.export import archive_name, manifest, scaffold_tar, write_image
from cixpkgs.image import ImageOptions, Role, assemble
from cixpkgs.scaffold import PASSWD_PATH


def _spec(small_catalog, role=Role.RUNTIME):
    return assemble(
        [small_catalog.base, small_catalog.shell, small_catalog.net],
        role,
        ImageOptions(name="ghcr.io/org/demo", tag="1.0"),
        snapshot=small_catalog.snapshot,
    )


def test_manifest_fields(small_catalog):
    """Manifest records name, role, layers and config."""
    spec = _spec(small_catalog)
    m = manifest(spec)
    assert m["name"] == "ghcr.io/org/demo"
    assert m["tag"] == "1.0"
    assert m["role"] == "runtime"
    assert m["snapshot"] == small_catalog.snapshot
    assert m["layers"][0]["paths"] == [small_catalog.base.out]
    assert m["scaffold"]["digest"] == spec.scaffold.digest
    assert m["config"]["User"] == "app"
    shadow = next(e for e in m["scaffold"]["entries"] if e["path"] == "/etc/shadow")
    assert shadow["mode"] == "0640"


def test_manifest_is_json_serializable(small_catalog):
    json.dumps(manifest(_spec(small_catalog, Role.DEVELOPMENT)))


def test_archive_name(small_catalog):
    assert archive_name(_spec(small_catalog)) == "demo-1.0.tar"


def test_scaffold_tar_members(small_catalog):
    """Scaffold tar carries every entry with its mode and owner."""
    spec = _spec(small_catalog)
    with tarfile.open(fileobj=io.BytesIO(scaffold_tar(spec))) as tar:
        passwd = tar.getmember("." + PASSWD_PATH)
        assert passwd.mtime == 0
        assert passwd.uname == ""
        assert tar.extractfile(passwd).read().decode() == spec.scaffold[PASSWD_PATH].content
        app = tar.getmember("./app")
        assert app.isdir()
        assert (app.uid, app.gid, app.mode) == (1000, 1000, 0o755)


def test_scaffold_tar_deterministic(small_catalog):
    assert scaffold_tar(_spec(small_catalog)) == scaffold_tar(_spec(small_catalog))


def test_write_image(small_catalog, tmp_path):
    spec = _spec(small_catalog)
    path = write_image(spec, tmp_path / "out")
    assert path == tmp_path / "out" / "demo-1.0.tar"
    with tarfile.open(path) as tar:
        assert tar.getnames() == ["manifest.json", "scaffold.tar"]
        loaded = json.load(tar.extractfile("manifest.json"))
    assert loaded == json.loads(json.dumps(manifest(spec)))


def test_write_image_deterministic(small_catalog, tmp_path):
    """Writing the same image twice gives identical bytes."""
    a = write_image(_spec(small_catalog), tmp_path / "a")
    b = write_image(_spec(small_catalog), tmp_path / "b")
    assert a.read_bytes() == b.read_bytes()

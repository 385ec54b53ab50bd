import pytest

from cixpkgs.artifact import artifact
from cixpkgs.catalog import ArtifactCatalog

SNAPSHOT = "test-snapshot-1"


@pytest.fixture
def libc():
    return artifact("libc", "1.0", srcs=["mirror://libc"])


@pytest.fixture
def small_catalog(libc):
    """{base, shell, net}, with shell and net depending on libc."""
    return ArtifactCatalog(SNAPSHOT, {
        "libc": libc,
        "base": artifact("base", "1.0", srcs=["mirror://base"]),
        "shell": artifact("shell", "5.2", runtime_deps=[libc], passthru={"shellPath": "/bin/sh"}),
        "net": artifact("net", "8.0", runtime_deps=[libc]),
    })


@pytest.fixture
def many():
    """Twelve independent artifacts, p0 .. p11."""
    return [artifact(f"p{i}", "1", srcs=[f"mirror://p{i}"]) for i in range(12)]

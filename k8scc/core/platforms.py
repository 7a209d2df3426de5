"""Chaincode platform registry.

Maps a chaincode type to how it is built and how it is started. Each entry is
an explicit ``PlatformSpec``; unknown types raise ``UnsupportedPlatformError``.

Build commands run inside the builder image with the source extracted at
``/chaincode/input/src`` and must leave the runnable result in
``/chaincode/output``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from k8scc.errors import UnsupportedPlatformError

INPUT_SRC = "/chaincode/input/src"
OUTPUT_DIR = "/chaincode/output"

_GO_LDFLAGS = "-linkmode external -extldflags '-static'"

_GOLANG_BUILD = f"""set -e
if [ -f "{INPUT_SRC}/go.mod" ] && [ -d "{INPUT_SRC}/vendor" ]; then
    cd {INPUT_SRC}
    GO111MODULE=on go build -v -mod=vendor -ldflags "{_GO_LDFLAGS}" -o {OUTPUT_DIR}/chaincode {{package}}
elif [ -f "{INPUT_SRC}/go.mod" ]; then
    cd {INPUT_SRC}
    GO111MODULE=on go build -v -mod=readonly -ldflags "{_GO_LDFLAGS}" -o {OUTPUT_DIR}/chaincode {{package}}
elif [ -f "{INPUT_SRC}/{{path}}/go.mod" ] && [ -d "{INPUT_SRC}/{{path}}/vendor" ]; then
    cd {INPUT_SRC}/{{path}}
    GO111MODULE=on go build -v -mod=vendor -ldflags "{_GO_LDFLAGS}" -o {OUTPUT_DIR}/chaincode .
elif [ -f "{INPUT_SRC}/{{path}}/go.mod" ]; then
    cd {INPUT_SRC}/{{path}}
    GO111MODULE=on go build -v -mod=readonly -ldflags "{_GO_LDFLAGS}" -o {OUTPUT_DIR}/chaincode .
else
    GO111MODULE=off GOPATH=/chaincode/input:$GOPATH go build -v -ldflags "{_GO_LDFLAGS}" -o {OUTPUT_DIR}/chaincode {{path}}
fi
echo Done!
"""


def _golang_build(path: str) -> str:
    package = path if path else "."
    return _GOLANG_BUILD.format(package=package, path=path)


def _node_build(path: str) -> str:
    return (
        f"cp -R {INPUT_SRC}/. {OUTPUT_DIR} && "
        f"cd {OUTPUT_DIR} && npm install --production"
    )


def _java_build(path: str) -> str:
    return "/root/chaincode-java/build.sh"


@dataclass(frozen=True)
class PlatformSpec:
    """How one chaincode language runtime is built and started."""

    name: str
    default_image: str
    build_command: Callable[[str], str]
    run_command: Callable[[str], list[str]]
    mount_dir: str
    build_env: dict[str, str] = field(default_factory=dict)

    def build_cmd(self, path: str) -> str:
        """Shell command building the chaincode found at package *path*."""
        return self.build_command(path)

    def run_args(self, peer_address: str) -> list[str]:
        """Container command starting the chaincode against *peer_address*."""
        return self.run_command(peer_address)


GOLANG = PlatformSpec(
    name="golang",
    default_image="hyperledger/fabric-ccenv:2.2",
    build_command=_golang_build,
    run_command=lambda peer: ["/chaincode/bin/chaincode", f"-peer.address={peer}"],
    mount_dir="/chaincode/bin",
    build_env={"GOCACHE": "/tmp"},
)

NODE = PlatformSpec(
    name="node",
    default_image="hyperledger/fabric-nodeenv:2.2",
    build_command=_node_build,
    run_command=lambda peer: [
        "/bin/sh",
        "-c",
        f"cd /usr/local/src && npm start -- --peer.address {peer}",
    ],
    mount_dir="/usr/local/src",
)

JAVA = PlatformSpec(
    name="java",
    default_image="hyperledger/fabric-javaenv:2.2",
    build_command=_java_build,
    run_command=lambda peer: ["/root/chaincode-java/start", "--peerAddress", peer],
    mount_dir="/root/chaincode-java/chaincode",
)


class PlatformRegistry:
    """Lookup table of supported chaincode platforms keyed by type."""

    def __init__(self, platforms: list[PlatformSpec] | None = None) -> None:
        self._platforms: dict[str, PlatformSpec] = {}
        for spec in platforms if platforms is not None else [GOLANG, NODE, JAVA]:
            self.register(spec)

    def register(self, spec: PlatformSpec) -> None:
        self._platforms[spec.name.lower()] = spec

    def get(self, chaincode_type: str) -> PlatformSpec:
        """Return the platform for *chaincode_type* (case-insensitive).

        Raises
        ------
        UnsupportedPlatformError
            If the type is not registered.
        """
        spec = self._platforms.get(chaincode_type.lower())
        if spec is None:
            raise UnsupportedPlatformError(
                f"platform {chaincode_type!r} not supported "
                f"(known: {', '.join(self.names)})"
            )
        return spec

    def supports(self, chaincode_type: str) -> bool:
        return chaincode_type.lower() in self._platforms

    @property
    def names(self) -> list[str]:
        return sorted(self._platforms)

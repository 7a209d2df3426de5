"""TLS artifact provisioning for the RUN Pod.

The ``populate-chaincode-artifacts`` step writes five files into the shared
volume. Raw PEM material goes to ``*_pem.*``; ``client.key``/``client.crt``
hold base64-wrapped copies because one chaincode runtime expects that form.
"""

from __future__ import annotations

import base64

ARTIFACTS_DIR = "/chaincode/artifacts"

ROOT_CERT_FILE = "root.crt"
CLIENT_PEM_KEY_FILE = "client_pem.key"
CLIENT_PEM_CERT_FILE = "client_pem.crt"
CLIENT_KEY_FILE = "client.key"
CLIENT_CERT_FILE = "client.crt"

ARTIFACT_FILES: tuple[str, ...] = (
    ROOT_CERT_FILE,
    CLIENT_PEM_KEY_FILE,
    CLIENT_PEM_CERT_FILE,
    CLIENT_KEY_FILE,
    CLIENT_CERT_FILE,
)


def tls_enabled(client_cert: str) -> str:
    """Value of ``CORE_PEER_TLS_ENABLED``: ``"false"`` iff the cert is empty."""
    return "false" if client_cert == "" else "true"


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def artifact_contents(root_cert: str, client_key: str, client_cert: str) -> dict[str, str]:
    """Map each artifact file name to the content written for it."""
    return {
        ROOT_CERT_FILE: root_cert,
        CLIENT_PEM_KEY_FILE: client_key,
        CLIENT_PEM_CERT_FILE: client_cert,
        CLIENT_KEY_FILE: _b64(client_key),
        CLIENT_CERT_FILE: _b64(client_cert),
    }


def render_artifacts_script(
    root_cert: str,
    client_key: str,
    client_cert: str,
    artifacts_dir: str = ARTIFACTS_DIR,
) -> str:
    """Render the shell script that writes the five TLS artifact files.

    Each file is written through a quoted heredoc so the content is taken
    literally; ``head -c -1`` drops the newline the heredoc appends.
    """
    lines = [f"mkdir -p {artifacts_dir}"]
    contents = artifact_contents(root_cert, client_key, client_cert)
    for index, (name, content) in enumerate(contents.items(), start=1):
        marker = f"EOF_{index}"
        lines.append(f"head -c -1 <<'{marker}' > {artifacts_dir}/{name}")
        lines.append(content)
        lines.append(marker)
    return "\n".join(lines) + "\n"

"""k8scc: Kubernetes external builder and launcher for chaincode.

Builds chaincode packages in short-lived BUILD Pods and runs them in RUN
Pods owned by the invoking peer Pod:
  - Build identifier derived from the peer's working directories
  - Source and compiled output staged through an HTTP exchange store
  - Init-container pipelines with strict step ordering
  - Pod lifecycle watch with cancellation and transient-error back-off
  - Env/YAML driven configuration (pydantic-settings)
"""

__version__ = "0.1.0"
__description__ = "Kubernetes external builder and launcher for chaincode"

from k8scc.core.launcher import Launcher
from k8scc.config import LauncherSettings, load_settings

__all__ = ["Launcher", "LauncherSettings", "load_settings", "__version__"]

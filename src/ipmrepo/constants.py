from os import getenv
from pathlib import Path

# resolved once at import; callers that need other locations pass paths explicitly
CONFIG_HOME = Path(getenv("XDG_CONFIG_HOME", Path.home() / ".config"))

USER_SOURCES_PATH = Path(getenv("IPMREPO_USER_SOURCES", CONFIG_HOME / "ipm" / "repos.list"))
SYSTEM_SOURCES_PATH = Path(getenv("IPMREPO_SYSTEM_SOURCES", "/etc/ipm/repos.list"))

REQUEST_TIMEOUT = float(getenv("IPMREPO_REQUEST_TIMEOUT", "30"))

DEFAULT_ARCHITECTURE = getenv("IPMREPO_DEFAULT_ARCH", "amd64")
DEFAULT_APT_SUITES = ["stable"]
DEFAULT_APT_COMPONENTS = ["main"]

IPAK_COMMAND = getenv("IPMREPO_IPAK", "ipak")

MANIFEST_NAME = "repo.yaml"
DESCRIPTOR_PATH = Path("ipm") / MANIFEST_NAME
NATIVE_PACKAGE_SUFFIX = ".ipak"

from pathlib import Path

import vault_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(vault_deployment.__file__).parent
CONFIG_DIR = DEPLOYMENT_DIR / "config"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

UNITS_FILEPATH = CONFIG_DIR / "units.yml"
NETWORKS_FILEPATH = CONFIG_DIR / "networks.yml"

ORPHANS_SUFFIX = ".orphans.json"

STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}

#
# Networks
#

LOCAL_NETWORKS = ["local"]

# matches any development network in a unit's availability list
DEVELOPMENT_NETWORKS = "development"

#
# Contracts
#

PROXY_CONTRACT = "ERC1967Proxy"
OZ_DEPENDENCY_NAME = "openzeppelin"
OZ_DEPENDENCY_VERSION = "5.0.0"

"""Global constants and command tables for virshle."""

from __future__ import annotations

import re
from pathlib import Path

VERSION = "0.2.0"

# Scoped work directory for conversion artifacts, relative to the current
# working directory of the invocation.
WORK_DIR = Path(".virshle/tmp")

DEFAULT_EDITOR = "nvim"
DEFAULT_VIRSH = "virsh"
DEFAULT_VALIDATOR = "virt-xml-validate"

MAX_VERBOSITY = 4

# Minimum verbosity required for each log level to be printed.
LOG_LEVELS = {
    "ERROR": 0,
    "WARN": 1,
    "INFO": 1,
    "SUCCESS": 1,
    "DEBUG": 2,
    "TRACE": 3,
}

LOG_COLOURS = {
    "INFO": "\033[0;34m",
    "WARN": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "SUCCESS": "\033[0;32m",
    "DEBUG": "\033[0;90m",
    "TRACE": "\033[0;35m",
}

EXTENSIONS = {
    ".toml": "toml",
    ".tml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".json": "json",
}

# Content sniffing priority. YAML accepts almost anything as a scalar so it
# must stay last.
SNIFF_ORDER = ("json", "toml", "xml", "yaml")

# Relative path markers resolved against the filesystem by the sanitizer.
RELATIVE_MARKERS = ("./", "../")

# XML conventions
XML_ATTR_PREFIX = "@"
XML_TEXT_KEY = "#text"
# Marks an element with no attributes, children or text (`<acpi/>`).
XML_EMPTY_KEY = "#empty"
XML_WRAPPER_TAG = "virshle"
XML_NAME_RE = re.compile(r"^[A-Za-z_][\w.\-]*(:[A-Za-z_][\w.\-]*)?$")
XML_INT_RE = re.compile(r"^-?(0|[1-9]\d*)$")
XML_FLOAT_RE = re.compile(r"^-?(0|[1-9]\d*)\.\d+$")

VIRSH_COMMANDS = {
    "vm": {
        "dump": "dumpxml",
        "create": "create",
        "define": "define",
        "list": "list",
        "destroy": "destroy",
        "shutdown": "shutdown",
        "undefine": "undefine",
    },
    "net": {
        "dump": "net-dumpxml",
        "create": "net-create",
        "define": "net-define",
        "list": "net-list",
        "remove": "net-destroy",
        "info": "net-info",
        "leases": "net-dhcp-leases",
    },
}

# Flags passed to `virsh undefine` by `vm crunch` to drop every trace of a domain.
CRUNCH_UNDEFINE_FLAGS = (
    "--managed-save",
    "--remove-all-storage",
    "--delete-storage-volume-snapshots",
    "--wipe-storage",
    "--snapshots-metadata",
    "--nvram",
    "--tpm",
)

"""
jvm.py
======
Description of a Java runtime installation and the flags it accepts.

Capabilities:
  - Locate the current Java home (JAVA_HOME, then ``java`` on PATH)
  - Validate a Java home layout (``<home>/bin/java[.exe]``)
  - Resolve the command used to launch a JVM
  - Detect security manager support (``release`` file, then a live probe)
  - Detect enhanced security manager tokens ("allow", "disallow", "default")
  - Generic "does this JVM accept this flag" probe

Probe notes:
  Every probe runs ``<java> <flag> -version`` with output merged into a
  temporary file.  A probe that times out, fails to launch, exits non-zero
  or prints a ``WARNING:`` line counts as unsupported.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import subprocess
import tempfile
import threading
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import psutil

import launcher_messages

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────

JAVA_EXE = "java.exe" if platform.system() == "Windows" else "java"

# First feature release without the security manager
SECURITY_MANAGER_REMOVED = 24

# First feature release accepting -Djava.security.manager=allow
ENHANCED_SECURITY_MANAGER_SINCE = 12

PROBE_TIMEOUT = 30

RELEASE_FILE = "release"
RELEASE_VERSION_KEY = "JAVA_VERSION="
WARNING_PREFIX = "WARNING:"

SECURITY_MANAGER_FLAG = "-Djava.security.manager"
ENHANCED_SECURITY_MANAGER_FLAG = "-Djava.security.manager=allow"


# ──────────────────────────────────────────────
#  Jvm Dataclass
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Jvm:
    """Immutable description of a JVM and the security manager flags it accepts."""

    path: Optional[Path]                        # Java home, None if unknown
    security_manager_supported: bool = False
    enhanced_security_manager_available: bool = False

    @classmethod
    def current(cls) -> "Jvm":
        """Return the process-wide descriptor for the current Java home."""
        global _current
        if _current is None:
            with _current_lock:
                if _current is None:
                    _current = _create_current()
        return _current

    @classmethod
    def of(
        cls,
        java_home: Optional[str | Path],
        timeout: float = PROBE_TIMEOUT,
    ) -> "Jvm":
        """
        Describe the JVM installed at *java_home*.

        ``None`` or the current Java home return the ``current()`` singleton.
        Any other path is validated and probed.

        Raises:
            PathNotFoundError:      java_home does not exist
            InvalidDirectoryError:  java_home is not a directory or has no bin/java
        """
        default = cls.current()
        if java_home is None:
            return default
        if default.path is not None and _normalize(java_home) == default.path:
            return default

        path = validate_java_home(java_home)
        supported = is_security_manager_supported(path, timeout)
        jvm = cls(
            path=path,
            security_manager_supported=supported,
            enhanced_security_manager_available=(
                supported and has_enhanced_security_manager(path, timeout)
            ),
        )
        logger.info(
            "JVM at %s: security_manager=%s enhanced=%s",
            path, jvm.security_manager_supported, jvm.enhanced_security_manager_available,
        )
        return jvm

    @property
    def command(self) -> str:
        """The command which launches this JVM."""
        return resolve_java_command(self.path)

    @property
    def is_modular(self) -> bool:
        """Always True; every supported JVM is modular."""
        warnings.warn(
            "Jvm.is_modular is deprecated and always returns True",
            DeprecationWarning,
            stacklevel=2,
        )
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path) if self.path else None,
            "command": self.command,
            "security_manager_supported": self.security_manager_supported,
            "enhanced_security_manager_available": self.enhanced_security_manager_available,
        }


# ──────────────────────────────────────────────
#  Current JVM
# ──────────────────────────────────────────────

_current: Optional[Jvm] = None
_current_lock = threading.Lock()


def find_java_home() -> Optional[Path]:
    """
    Locate the Java home this process would launch.

    Checks JAVA_HOME first, then resolves ``java`` on PATH
    (``<home>/bin/java`` → ``<home>``).
    """
    java_home = os.environ.get("JAVA_HOME", "")
    if java_home and os.path.isdir(java_home):
        return _normalize(java_home)

    java_in_path = shutil.which("java")
    if java_in_path:
        return Path(java_in_path).resolve().parent.parent

    logger.debug("No Java home found in JAVA_HOME or PATH")
    return None


def _create_current() -> Jvm:
    # Static information only; the current JVM is never launched.
    java_home = find_java_home()
    feature = None
    if java_home is not None:
        version = read_release_version(java_home)
        if version is not None:
            feature = parse_feature_version(version)

    supported = feature is not None and feature < SECURITY_MANAGER_REMOVED
    enhanced = supported and feature >= ENHANCED_SECURITY_MANAGER_SINCE
    logger.info(
        "Current JVM: home=%s feature=%s security_manager=%s enhanced=%s",
        java_home, feature, supported, enhanced,
    )
    return Jvm(
        path=java_home,
        security_manager_supported=supported,
        enhanced_security_manager_available=enhanced,
    )


# ──────────────────────────────────────────────
#  Validation & Command Resolution
# ──────────────────────────────────────────────

def _normalize(path: str | Path) -> Path:
    return Path(os.path.abspath(path))


def validate_java_home(java_home: Optional[str | Path]) -> Path:
    """
    Validate the layout of a Java home and return its normalized path.

    Raises:
        PathNotFoundError:      java_home is None or does not exist
        InvalidDirectoryError:  java_home is not a directory, or bin/<exe> is missing
    """
    messages = launcher_messages.MESSAGES
    if java_home is None or not os.path.exists(java_home):
        logger.warning("Java home does not exist: %s", java_home)
        raise messages.path_does_not_exist(java_home)
    if not os.path.isdir(java_home):
        logger.warning("Java home is not a directory: %s", java_home)
        raise messages.invalid_directory(java_home)

    result = _normalize(java_home)
    if not (result / "bin" / JAVA_EXE).exists():
        fragment = os.path.join("bin", JAVA_EXE)
        logger.warning("Java home %s has no %s", java_home, fragment)
        raise messages.invalid_java_home_bin(fragment, java_home)
    return result


def _java_executable(java_home: Optional[str | Path]) -> str:
    if java_home is None:
        return "java"
    return str(Path(java_home) / "bin" / "java")


def resolve_java_command(java_home: Optional[str | Path]) -> str:
    """
    Return the java command for *java_home*, or bare ``java`` for None.

    Commands containing a space are wrapped in double quotes.
    """
    exe = _java_executable(java_home)
    if " " in exe:
        return f'"{exe}"'
    return exe


# ──────────────────────────────────────────────
#  Release File
# ──────────────────────────────────────────────

def read_release_version(java_home: str | Path) -> Optional[str]:
    """
    Return the JAVA_VERSION value from ``<java_home>/release``, quotes removed.

    None when the file is missing, unreadable or has no JAVA_VERSION line.
    JREs commonly ship without a release file.
    """
    release = Path(java_home) / RELEASE_FILE
    if not (release.is_file() and os.access(release, os.R_OK)):
        return None
    try:
        with open(release, "r", encoding="utf-8") as fh:
            for line in fh:
                if line.startswith(RELEASE_VERSION_KEY):
                    value = line.split("=", 1)[1]
                    return value.strip().replace('"', "")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Could not read %s: %s", release, exc)
    return None


def parse_feature_version(version: str) -> Optional[int]:
    """Return the first dotted segment of *version* as an int ("17.0.1" → 17)."""
    segment = version.split(".")[0]
    # ASCII digits with an optional sign; no underscores, spaces or other scripts
    if not (segment.isascii() and segment.lstrip("+-").isdigit()):
        logger.debug("Unparseable Java version: %r", version)
        return None
    try:
        return int(segment)
    except ValueError:
        logger.debug("Unparseable Java version: %r", version)
        return None


# ──────────────────────────────────────────────
#  Probe Strategies
# ──────────────────────────────────────────────
# Each strategy returns True / False when conclusive, None to defer
# to the next one.  When every strategy defers the answer is False.

ProbeStrategy = Callable[[Path, float], Optional[bool]]


def _probe_release_file(java_home: Path, timeout: float) -> Optional[bool]:
    version = read_release_version(java_home)
    if version is None:
        return None
    feature = parse_feature_version(version)
    if feature is None:
        return None
    return feature < SECURITY_MANAGER_REMOVED


def _probe_security_manager_process(java_home: Path, timeout: float) -> Optional[bool]:
    return is_package_available(java_home, SECURITY_MANAGER_FLAG, timeout)


def _probe_enhanced_security_manager_process(java_home: Path, timeout: float) -> Optional[bool]:
    return is_package_available(java_home, ENHANCED_SECURITY_MANAGER_FLAG, timeout)


SECURITY_MANAGER_PROBES: Tuple[ProbeStrategy, ...] = (
    _probe_release_file,
    _probe_security_manager_process,
)

ENHANCED_SECURITY_MANAGER_PROBES: Tuple[ProbeStrategy, ...] = (
    _probe_enhanced_security_manager_process,
)


def run_probes(
    java_home: Path,
    probes: Sequence[ProbeStrategy],
    timeout: float = PROBE_TIMEOUT,
) -> bool:
    """Run *probes* in order and return the first conclusive answer, else False."""
    for probe in probes:
        result = probe(java_home, timeout)
        if result is not None:
            logger.debug("%s(%s) → %s", probe.__name__, java_home, result)
            return result
        logger.debug("%s(%s) inconclusive", probe.__name__, java_home)
    return False


def is_security_manager_supported(java_home: Path, timeout: float = PROBE_TIMEOUT) -> bool:
    """Check whether the JVM at *java_home* still supports the security manager."""
    return run_probes(java_home, SECURITY_MANAGER_PROBES, timeout)


def has_enhanced_security_manager(java_home: Path, timeout: float = PROBE_TIMEOUT) -> bool:
    """Check whether the JVM accepts "allow", "disallow" & "default" security manager tokens."""
    return run_probes(java_home, ENHANCED_SECURITY_MANAGER_PROBES, timeout)


def is_package_available(
    java_home: Optional[str | Path],
    argument: str,
    timeout: float = PROBE_TIMEOUT,
) -> bool:
    """Run ``<java> <argument> -version`` and report whether the JVM accepted it."""
    return check_process_status([_java_executable(java_home), argument, "-version"], timeout)


# ──────────────────────────────────────────────
#  Process Probe
# ──────────────────────────────────────────────

def check_process_status(cmd: List[str], timeout: float = PROBE_TIMEOUT) -> bool:
    """
    Run *cmd* and return True if it exits 0 within *timeout* seconds
    without printing a ``WARNING:`` line.

    Output (stdout + stderr) goes to a temporary file which is always
    removed.  A child still running after the timeout is killed along with
    its children.
    """
    result = False
    process: Optional[subprocess.Popen] = None
    try:
        fd, output_name = tempfile.mkstemp(prefix="stdout", suffix=".txt")
    except OSError as exc:
        logger.debug("Could not create probe output file: %s", exc)
        return False
    output_path = Path(output_name)
    try:
        with os.fdopen(fd, "wb") as output:
            try:
                process = subprocess.Popen(cmd, stdout=output, stderr=subprocess.STDOUT)
                process.wait(timeout=timeout)
                result = process.returncode == 0
            except subprocess.TimeoutExpired:
                logger.debug("Probe timed out after %ss: %s", timeout, cmd)
                result = False
            except (OSError, ValueError, subprocess.SubprocessError) as exc:
                # ValueError: arguments with embedded NUL bytes
                logger.debug("Probe could not be launched: %r (%s)", cmd, exc)
                result = False
            finally:
                if process is not None and process.poll() is None:
                    _force_kill(process)
    finally:
        try:
            if contains_warning(output_path):
                result = False
        except OSError as exc:
            logger.debug("Could not read probe output %s: %s", output_path, exc)
        try:
            output_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.debug("Could not delete probe output %s: %s", output_path, exc)

    logger.debug("Probe %s → %s", cmd, result)
    return result


def contains_warning(log_file: Path) -> bool:
    """Return True if any line of *log_file* starts with ``WARNING:``."""
    with open(log_file, "r", encoding="utf-8", errors="replace") as fh:
        for line in fh:
            if line.startswith(WARNING_PREFIX):
                return True
    return False


def _force_kill(process: subprocess.Popen) -> None:
    """Kill a probe process and all its children."""
    try:
        parent = psutil.Process(process.pid)
        children = parent.children(recursive=True)
        for child in children:
            child.kill()
        parent.kill()
        psutil.wait_procs([parent] + children, timeout=5)
    except (psutil.NoSuchProcess, psutil.AccessDenied, ProcessLookupError):
        pass
    finally:
        # Reap the Popen handle
        if process.poll() is None:
            process.kill()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("Probe process %d did not exit after kill", process.pid)

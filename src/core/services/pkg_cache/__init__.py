"""
Package cache engine — capture and replay apt installs.

Public API re-exports for consumers::

    from src.core.services.pkg_cache import normalize_package_list, parse_transcript
"""

from __future__ import annotations

from src.core.services.pkg_cache.apt_index import AptPackageIndex  # noqa: F401
from src.core.services.pkg_cache.capture import (  # noqa: F401
    ArchiveCapturer,
    archive_relpath,
    format_size,
)
from src.core.services.pkg_cache.control_scripts import (  # noqa: F401
    POSTINST,
    PREINST,
    find_control_script,
    run_control_script,
)
from src.core.services.pkg_cache.errors import (  # noqa: F401
    ArchiveRestoreError,
    ArchiveWriteError,
    EmptyPackageListError,
    EmptyVersionError,
    InstallError,
    InvalidVersionError,
    MissingPackageNameError,
    MissingVersionError,
    PackageCacheError,
    TranscriptParseError,
    UnknownPackageError,
    UnterminatedProgressError,
)
from src.core.services.pkg_cache.keys import (  # noqa: F401
    CACHE_EPOCH,
    CACHE_KEY_FILE,
    cache_key_value,
    derive_cache_key,
    write_cache_key,
)
from src.core.services.pkg_cache.manifest import (  # noqa: F401
    ALL_MANIFEST,
    MAIN_MANIFEST,
    manifest_sequence,
    read_manifest,
    write_manifest,
)
from src.core.services.pkg_cache.normalize import (  # noqa: F401
    bare_package_name,
    normalize_package_list,
    split_package_list,
)
from src.core.services.pkg_cache.restore import restore_archives  # noqa: F401
from src.core.services.pkg_cache.transcript import (  # noqa: F401
    parse_transcript,
    parse_unpack_line,
    read_transcript,
)

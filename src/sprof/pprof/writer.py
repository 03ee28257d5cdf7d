import gzip
import logging
import os
import tempfile

from sprof.pprof.profile import Profile
from sprof.pprof.proto import ProfileMessage, from_message, to_message

logger = logging.getLogger(__name__)


def write_profile(profile: Profile, path: str) -> None:
    """
    Validate profile and write it to path as gzipped pprof protobuf.

    The file appears only once it is complete: data is written to a temporary
    file beside path and renamed over it. Nothing is left behind on failure.

    Raises:
        ProfileValidationError: if the profile is malformed
        OSError: if the destination cannot be written
    """
    profile.check_valid()
    data = gzip.compress(to_message(profile).SerializeToString())

    path = os.path.abspath(path)
    fd, tmp_path = tempfile.mkstemp(prefix=".sprof-", suffix=".tmp", dir=os.path.dirname(path))
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.chmod(tmp_path, 0o666 & ~_current_umask())
        os.replace(tmp_path, path)
    except BaseException:
        os.unlink(tmp_path)
        raise
    logger.debug(f"Wrote {len(data)} bytes to {path}")


def read_profile(path: str) -> Profile:
    with open(path, 'rb') as f:
        data = f.read()
    # pprof accepts both compressed and raw protobuf
    if data[:2] == b"\x1f\x8b":
        data = gzip.decompress(data)
    return from_message(ProfileMessage.FromString(data))


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask

# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""Collection of libjailnet helper functions."""
import json
import os
import os.path
import re
import subprocess  # nosec: B404
import tempfile
import typing

import libjailnet.errors

# MyPy
import libjailnet.Logger  # noqa: F401


CommandResult = typing.Tuple[typing.Optional[str], typing.Optional[str], int]


def exec(
    command: typing.List[str],
    logger: typing.Optional['libjailnet.Logger.Logger']=None,
    ignore_error: bool=False,
    timeout: typing.Optional[float]=None,
    **subprocess_args: typing.Any
) -> CommandResult:
    """
    Run a host command without a shell.

    Returns stdout, stderr and the exit code. A non-zero exit code raises
    CommandFailure unless ignore_error is set. Commands that exceed the
    timeout are killed and always raise.
    """
    command_str = " ".join(command)
    if logger is not None:
        logger.spam(f"Executing: {command_str}")

    subprocess_args.setdefault("stdout", subprocess.PIPE)
    subprocess_args.setdefault("stderr", subprocess.PIPE)
    child = subprocess.Popen(  # nosec: B603
        command,
        shell=False,
        **subprocess_args
    )

    try:
        raw_stdout, raw_stderr = child.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        child.kill()
        child.communicate()
        raise libjailnet.errors.CommandFailure(
            returncode=-1,
            command=command_str,
            stderr=f"timed out after {timeout}s",
            logger=logger
        )

    stdout = _decode(raw_stdout)
    stderr = _decode(raw_stderr)
    if (logger is not None) and stdout:
        logger.spam(_indent_output(stdout))

    returncode = child.returncode
    if returncode == 0:
        return stdout, stderr, returncode

    if logger is not None:
        log_level = "spam" if (ignore_error is True) else "warn"
        logger.log(f"{command_str} exited with {returncode}", level=log_level)
        if stderr:
            logger.log(_indent_output(stderr), level=log_level)

    if ignore_error is False:
        raise libjailnet.errors.CommandFailure(
            returncode=returncode,
            command=command_str,
            stderr=stderr
        )
    return stdout, stderr, returncode


def _decode(output: typing.Optional[bytes]) -> typing.Optional[str]:
    if output is None:
        return None
    return output.decode("UTF-8").strip()


def _indent_output(output: str) -> str:
    return "\n".join([f"    {x}" for x in output.splitlines()])


_true_values = ("yes", "true", "on", "1")
_false_values = ("no", "false", "off", "0")


def parse_bool(data: typing.Optional[typing.Union[str, bool]]) -> bool:
    """
    Parse a boolean from a bool or a string like YES, off or 1.

    Raises TypeError for any other value.
    """
    if isinstance(data, bool):
        return data
    if isinstance(data, str):
        value = data.lower()
        if value in _true_values:
            return True
        if value in _false_values:
            return False
    raise TypeError(f"Value is not a boolean: {data}")


def parse_int(data: typing.Optional[typing.Union[str, int, float]]) -> int:
    """
    Parse an integer from an int, an integral float or a string.

    Booleans and None are rejected with a TypeError.
    """
    if (data is None) or isinstance(data, bool):
        raise TypeError(f"Value is not an integer: {data}")
    if isinstance(data, float) and (data.is_integer() is False):
        raise TypeError(f"Value is not an integer: {data}")
    try:
        return int(data)
    except ValueError:
        raise TypeError(f"Value is not an integer: {data}")


def parse_object_id(data: typing.Optional[typing.Union[str, int]]) -> int:
    """
    Return a network object or switch reference as integer.

    Missing references (None, empty strings) are represented by 0.
    """
    if (data is None) or (data == ""):
        return 0
    value = parse_int(data)
    if value < 0:
        raise TypeError(f"Reference may not be negative: {data}")
    return value


def get_logical_cores() -> int:
    """Return the number of logical CPU cores of the host."""
    return os.cpu_count() or 1


def to_json(data: typing.Dict[str, typing.Any]) -> str:
    """Create a JSON string from the input data."""
    return str(json.dumps(data, sort_keys=True, indent=4))


_hostname_invalid_characters = re.compile(r"[^a-z0-9-]")
_hostname_dashes = re.compile(r"-+")


def make_valid_hostname(name: str) -> str:
    """Return a RFC 1123 hostname label derived from a jail name."""
    hostname = _hostname_invalid_characters.sub("-", name.lower())
    hostname = _hostname_dashes.sub("-", hostname).strip("-")
    if hostname == "":
        hostname = "host"
    return hostname[:63]


def require_no_symlink(
    path: str,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> None:
    """Raise when the path contains a symlink."""
    directories = path.split("/")
    while len(directories) > 0:
        current_directory = "/".join(directories)
        if os.path.exists(current_directory):
            if os.path.islink(current_directory):
                raise libjailnet.errors.SecurityViolation(
                    reason=f"Path {path} contains a symbolic link.",
                    logger=logger
                )
        directories.pop()


def makedirs_safe(
    target: str,
    mode: int=0o755,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> None:
    """Create a directory without following symlinks."""
    require_no_symlink(target, logger=logger)
    if os.path.isdir(target):
        return
    if logger is not None:
        logger.verbose(f"Safely creating {target} directory")
    os.makedirs(target, mode=mode, exist_ok=True)


def write_file_atomic(
    path: str,
    content: str,
    mode: int=0o644
) -> None:
    """Replace the file content in full or leave the file untouched."""
    directory = os.path.dirname(os.path.abspath(path))
    fd, temp_path = tempfile.mkstemp(
        prefix=f".{os.path.basename(path)}.",
        dir=directory
    )
    try:
        with os.fdopen(fd, "w", encoding="UTF-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

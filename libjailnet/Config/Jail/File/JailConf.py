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
"""Read, filter and write jail.conf(5) files of jails."""
import typing
import collections.abc
import os.path
import re

import libjailnet.errors
import libjailnet.helpers
import libjailnet.helpers_object
import libjailnet.Config.Jail.File


class JailConfLine(dict):
    """Model a line of a jail.conf file."""

    def __init__(self, data: dict) -> None:
        if "line" not in data:
            raise ValueError("malformed input")
        dict.__init__(self, data)

    def __str__(self) -> str:
        """Return the untouched line."""
        return str(self["line"])

    @property
    def is_network_directive(self) -> bool:
        """Return True if the line is managed by the network synthesizer."""
        return False


class JailConfOtherLine(JailConfLine):
    """Block braces, comments, empty lines and unrecognized text."""

    pass


class JailConfParameterLine(JailConfLine):
    """A jail parameter line with a key."""

    @property
    def key(self) -> str:
        """Return the parameter name."""
        return str(self["key"])

    def _is_network_parameter(self) -> bool:
        key = self.key
        if key == "vnet.interface":
            return True
        if key in ("ip4", "ip6"):
            return True
        return key.startswith("ip4.") or key.startswith("ip6.")

    @property
    def is_network_directive(self) -> bool:
        """Return True for vnet.interface, ip4 and ip6 parameters."""
        return self._is_network_parameter()


class JailConfFlagLine(JailConfParameterLine):
    """Model a boolean flag like `persist;` or `vnet;`."""

    @property
    def is_network_directive(self) -> bool:
        """Return True for the vnet flag."""
        if self.key == "vnet":
            return True
        return self._is_network_parameter()


class JailConfAssignmentLine(JailConfParameterLine):
    """Model a `key = value;` line."""

    @property
    def value(self) -> str:
        """Return the unquoted value."""
        return str(self["value"])


class JailConfAppendLine(JailConfAssignmentLine):
    """Model a `key += "value";` line."""

    @property
    def command(self) -> typing.List[str]:
        """Return the words of the value when it is a shell command."""
        return self.value.split()

    @property
    def is_network_directive(self) -> bool:
        """Return True for exec hooks that configure jail interfaces."""
        if self._is_network_parameter() is True:
            return True
        if self.key.startswith("exec.") is False:
            return False
        return _is_network_command(self.command)


_network_sysrc_prefixes = ("ifconfig_", "ipv6_")


def _is_network_command(words: typing.List[str]) -> bool:
    if len(words) == 0:
        return False
    program = words[0]
    if program in ("ifconfig", "dhclient"):
        return True
    if program == "route":
        return words[1:3] == ["add", "default"]
    if program == "sysrc":
        for argument in words[1:]:
            variable = argument.split("=", maxsplit=1)[0]
            if variable.startswith(_network_sysrc_prefixes):
                return True
        return False
    # bridge membership guard
    if program == "if":
        return words[1:3] == ["!", "ifconfig"]
    return False


_key_pattern = r"(?P<key>[A-Za-z0-9_.$][A-Za-z0-9_.$-]*)"
_append_pattern = re.compile(
    r"^\s*" + _key_pattern + r"\s*\+=\s*(?P<value>.*?)\s*;\s*$"
)
_assignment_pattern = re.compile(
    r"^\s*" + _key_pattern + r"\s*=\s*(?P<value>.*?)\s*;\s*$"
)
_flag_pattern = re.compile(r"^\s*" + _key_pattern + r"\s*;\s*$")


def _unquote(value: str) -> str:
    if (len(value) >= 2) and value.startswith("\"") and value.endswith("\""):
        return value[1:-1].replace("\\\"", "\"")
    return value


def _quote(value: str) -> str:
    escaped = value.replace("\"", "\\\"")
    return f"\"{escaped}\""


def parse_line(line: str) -> JailConfLine:
    """Classify a single line of a jail.conf file."""
    match = _append_pattern.match(line)
    if match is not None:
        return JailConfAppendLine(dict(
            line=line,
            key=match.group("key"),
            value=_unquote(match.group("value"))
        ))

    match = _assignment_pattern.match(line)
    if match is not None:
        return JailConfAssignmentLine(dict(
            line=line,
            key=match.group("key"),
            value=_unquote(match.group("value"))
        ))

    match = _flag_pattern.match(line)
    if match is not None:
        return JailConfFlagLine(dict(
            line=line,
            key=match.group("key")
        ))

    return JailConfOtherLine(dict(line=line))


def render_flag(key: str) -> str:
    """Return a flag directive line."""
    return f"\t{key};"


def render_assignment(key: str, value: str) -> str:
    """Return an unquoted assignment directive line."""
    return f"\t{key}={value};"


def render_append(key: str, value: str) -> str:
    """Return an append directive line with a quoted value."""
    return f"\t{key} += {_quote(value)};"


def collapse_blank_lines(text: str) -> str:
    """Replace runs of newlines with a single one."""
    return re.sub(r"\n{2,}", "\n", text)


def memory_limit_command(token: str, megabytes: int) -> str:
    """Return the rctl command that limits the memory of a jail."""
    return f"rctl -a jail:{token}:memoryuse:deny={megabytes}M"


def cpuset_string(cpuset: typing.List[int]) -> str:
    """Return a core list as accepted by cpuset(1)."""
    return ",".join([str(x) for x in cpuset])


def cpuset_command(token: str, cpuset: typing.List[int]) -> str:
    """Return the cpuset command that pins a jail to CPU cores."""
    return f"cpuset -l {cpuset_string(cpuset)} -j {token}"


class JailConf(collections.abc.MutableSequence):
    """
    Lines of a jail.conf file.

    Lines keep their original text, so a configuration that is parsed and
    serialized again without changes is byte identical.
    """

    _lines: typing.List[JailConfLine]

    def __init__(self, text: str="") -> None:
        self._lines = []
        self.parse_lines(text)

    def parse_lines(self, text: str) -> None:
        """Replace the lines with the lines of a text."""
        self._lines = [parse_line(line) for line in text.split("\n")]

    def __str__(self) -> str:
        """Return the configuration text."""
        return "\n".join([str(line) for line in self._lines])

    def __len__(self) -> int:
        """Return the number of lines."""
        return len(self._lines)

    def __getitem__(self, index: int) -> JailConfLine:  # noqa: T484
        """Return the line at the given index."""
        return self._lines[index]

    def __setitem__(  # noqa: T484
        self,
        index: int,
        value: typing.Union[str, JailConfLine]
    ) -> None:
        """Replace the line at the given index."""
        if isinstance(value, str):
            value = parse_line(value)
        self._lines[index] = value

    def __delitem__(self, index: int) -> None:  # noqa: T484
        """Delete the line at the given index."""
        del self._lines[index]

    def insert(  # noqa: T484
        self,
        index: int,
        value: typing.Union[str, JailConfLine]
    ) -> None:
        """Insert a line at the given index."""
        if isinstance(value, str):
            value = parse_line(value)
        self._lines.insert(index, value)

    @property
    def network_directives(self) -> typing.List[JailConfLine]:
        """Return all lines managed by the network synthesizer."""
        return [x for x in self._lines if x.is_network_directive is True]

    def strip_network_directives(self) -> None:
        """Remove all network directive lines in place."""
        self._lines = [
            x for x in self._lines
            if x.is_network_directive is False
        ]

    def find_append(
        self,
        key: str,
        command_prefix: str,
        command_suffix: str=""
    ) -> typing.Optional[int]:
        """Return the index of the first append line matching the prefix."""
        for index, line in enumerate(self._lines):
            if isinstance(line, JailConfAppendLine) is False:
                continue
            if line.key != key:
                continue
            value = line.value
            if value.startswith(command_prefix) is False:
                continue
            if value.endswith(command_suffix) is True:
                return index
        return None


def strip_network_directives(text: str) -> str:
    """
    Remove all network directive lines from a jail.conf text.

    All other lines are kept verbatim and in their original order.
    """
    config = JailConf(text)
    config.strip_network_directives()
    return str(config)


def insert_directives(
    text: str,
    lines: typing.List[str],
    ctid: typing.Optional[int]=None,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> str:
    """Insert directive lines before the final closing brace of the block."""
    last_curly = text.rfind("}")
    if last_curly == -1:
        raise libjailnet.errors.InvalidJailConfig(
            ctid=ctid,
            reason="no closing brace found",
            logger=logger
        )
    block = "".join([f"{line}\n" for line in lines])
    return text[:last_curly] + block + "\n" + text[last_curly:]


def set_memory_limit(
    text: str,
    token: str,
    megabytes: int,
    ctid: typing.Optional[int]=None,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> str:
    """Rewrite or add the memory limit hook of a jail.conf text."""
    hook = render_append(
        "exec.poststart",
        memory_limit_command(token, megabytes)
    )
    config = JailConf(text)
    index = config.find_append(
        "exec.poststart",
        f"rctl -a jail:{token}:memoryuse:deny="
    )
    if index is not None:
        config[index] = hook
        return str(config)
    return insert_directives(
        str(config),
        [hook],
        ctid=ctid,
        logger=logger
    )


def set_cpuset(
    text: str,
    token: str,
    cpuset: typing.List[int],
    ctid: typing.Optional[int]=None,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> str:
    """Rewrite or add the exec.created cpuset hook of a jail.conf text."""
    hook = render_append("exec.created", cpuset_command(token, cpuset))
    config = JailConf(text)
    index = config.find_append(
        "exec.created",
        "cpuset -l ",
        command_suffix=f" -j {token}"
    )
    if index is not None:
        config[index] = hook
        return str(config)
    return insert_directives(
        str(config),
        [hook],
        ctid=ctid,
        logger=logger
    )


class JailConfFile(libjailnet.Config.Jail.File.ConfigTextFile):
    """The jail.conf file of a single jail."""

    def __init__(
        self,
        ctid: int,
        jails_dir: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.ctid = ctid
        self.jails_dir = jails_dir
        file = os.path.join(jails_dir, str(ctid), f"{ctid}.conf")
        libjailnet.Config.Jail.File.ConfigTextFile.__init__(
            self,
            file=file,
            logger=logger
        )

    @property
    def directory(self) -> str:
        """Return the directory holding the jail.conf file."""
        return os.path.dirname(self.path)

    def read(self) -> str:
        """Return the configuration text."""
        try:
            return self.read_text()
        except FileNotFoundError:
            raise libjailnet.errors.JailConfigNotFound(
                ctid=self.ctid,
                path=self.path,
                logger=self.logger
            )
        except OSError as e:
            raise libjailnet.errors.JailConfigReadError(
                ctid=self.ctid,
                path=self.path,
                reason=str(e),
                logger=self.logger
            )

    def write(self, text: str) -> str:
        """
        Overwrite the configuration file in full.

        Runs of blank lines are collapsed before writing. The written text
        is returned.
        """
        text = collapse_blank_lines(text)
        libjailnet.helpers.require_no_symlink(self.path, logger=self.logger)
        try:
            libjailnet.helpers.makedirs_safe(
                self.directory,
                logger=self.logger
            )
            self.write_text(text)
        except OSError as e:
            raise libjailnet.errors.JailConfigWriteError(
                ctid=self.ctid,
                path=self.path,
                reason=str(e),
                logger=self.logger
            )
        return text

    def delete(self) -> None:
        """Remove the configuration file if it exists."""
        if self.exists is False:
            return
        try:
            os.remove(self.path)
        except OSError as e:
            raise libjailnet.errors.JailConfigWriteError(
                ctid=self.ctid,
                path=self.path,
                reason=str(e),
                logger=self.logger
            )
        self.logger.verbose(f"Removed {self.path}")

    def restore(self, text: typing.Optional[str]) -> None:
        """Write back a previous content or remove a file that was new."""
        if text is None:
            self.delete()
            return
        try:
            self.write_text(text)
        except OSError as e:
            raise libjailnet.errors.JailConfigWriteError(
                ctid=self.ctid,
                path=self.path,
                reason=str(e),
                logger=self.logger
            )


class JailConfStore:
    """Access the jail.conf files below the jails directory."""

    def __init__(
        self,
        jails_dir: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.jails_dir = jails_dir

    def get(self, ctid: int) -> JailConfFile:
        """Return the jail.conf file of a jail."""
        return JailConfFile(
            ctid=ctid,
            jails_dir=self.jails_dir,
            logger=self.logger
        )

    def path(self, ctid: int) -> str:
        """Return the path of the jail.conf file of a jail."""
        return self.get(ctid).path

    def exists(self, ctid: int) -> bool:
        """Return True if the jail.conf file of a jail exists."""
        return self.get(ctid).exists

    def read(self, ctid: int) -> str:
        """Return the configuration text of a jail."""
        return self.get(ctid).read()

    def write(self, ctid: int, text: str) -> str:
        """Write the configuration text of a jail."""
        return self.get(ctid).write(text)

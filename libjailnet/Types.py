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
"""Validated string types of libjailnet."""
import re


class AbsolutePath(str):
    """A Unix path that begins with / and never leaves its parents."""

    illegal_sequences = re.compile(r"(//)|(/\.\.)|(\.\./)|(\n)|(\r)")

    def __init__(self, sequence: str) -> None:
        if isinstance(sequence, str) is False:
            raise TypeError("AbsolutePath must be a string")

        if sequence.startswith("/") is False:
            raise ValueError(f"Expected an absolute path, but got: {sequence}")

        if self.illegal_sequences.search(sequence) is not None:
            raise ValueError(f"Illegal path: {sequence}")


class InterfaceName(str):
    """
    Name of a host network interface.

    Interface names end up in the shell hooks of jail.conf files, so only
    the characters FreeBSD accepts in interface names are allowed.
    """

    pattern = re.compile(r"^[A-Za-z][A-Za-z0-9_.]{0,14}$")

    def __init__(self, sequence: str) -> None:
        if isinstance(sequence, str) is False:
            raise TypeError("InterfaceName must be a string")

        if self.pattern.match(sequence) is None:
            raise ValueError(f"Invalid interface name: {sequence}")

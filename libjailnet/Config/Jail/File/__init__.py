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
"""Prototype of plain text config files stored on the filesystem."""
import typing
import os.path

import libjailnet.helpers
import libjailnet.helpers_object


class ConfigTextFile:
    """
    Line based text file that is always read and written in full.

    Writes go to a temporary file that replaces the original, so readers
    never observe a partially written file.
    """

    _file: str
    mode: int = 0o644
    logger: 'libjailnet.Logger.Logger'

    def __init__(
        self,
        file: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self._file = file

    @property
    def path(self) -> str:
        """Absolute path to the file."""
        return os.path.abspath(self._file)

    @property
    def exists(self) -> bool:
        """Return True when the file exists."""
        return os.path.isfile(self.path)

    def read_text(self) -> str:
        """Return the file content. OSErrors are passed to the caller."""
        with open(self.path, "r", encoding="UTF-8") as f:
            content = f.read()
        self.logger.spam(f"{self._file} was read from {self.path}")
        return content

    def write_text(self, content: str) -> None:
        """Replace the file content. OSErrors are passed to the caller."""
        self.logger.verbose(f"Writing {self.path}")
        libjailnet.helpers.write_file_atomic(
            self.path,
            content,
            mode=self.mode
        )
        self.logger.spam(content.rstrip("\n"), indent=1)

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
"""Prototype of a file based configuration."""
import io
import typing
import os.path

import libjailnet.helpers
import libjailnet.helpers_object

# MyPy
import libjailnet.Logger


ConfigDataDict = typing.Dict[str, typing.Any]


class Prototype:
    """Prototype of a configuration stored in a file."""

    logger: 'libjailnet.Logger.Logger'
    _file: str

    def __init__(
        self,
        file: typing.Optional[str]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:

        self.logger = libjailnet.helpers_object.init_logger(self, logger)

        if file is not None:
            self._file = file

    @property
    def file(self) -> str:
        """Return the path to the config file."""
        return self._file

    @file.setter
    def file(self, value: str) -> None:
        self._file = value

    def read(self) -> ConfigDataDict:
        """
        Read from the configuration file.

        A missing file is read as empty configuration.
        """
        try:
            with open(self.file, "r", encoding="UTF-8") as f:
                content = f.read()
        except FileNotFoundError:
            return {}
        except OSError as e:
            self._handle_error(str(e))
        result = self.map_input(io.StringIO(content))
        self.logger.spam(f"{self.file} was read")
        return result

    def write(self, data: ConfigDataDict) -> None:
        """Write the full configuration data to the file at once."""
        text_data = str(self.map_output(data))
        try:
            libjailnet.helpers.makedirs_safe(
                os.path.dirname(os.path.abspath(self.file)),
                logger=self.logger
            )
            libjailnet.helpers.write_file_atomic(self.file, text_data)
        except OSError as e:
            self._handle_error(str(e))
        self.logger.verbose(f"{self.file} written")

    def map_input(self, data: typing.TextIO) -> ConfigDataDict:
        """
        Map input data (for reading from the configuration).

        Implementing classes must provide individual mappings.
        """
        raise NotImplementedError("Mapping not implemented on the prototype")

    def map_output(self, data: ConfigDataDict) -> str:
        """
        Map output data (for writing to the configuration).

        Implementing classes must provide individual mappings.
        """
        raise NotImplementedError("Mapping not implemented on the prototype")

    def _handle_error(self, reason: str) -> typing.NoReturn:
        raise NotImplementedError("Error handling not implemented")

    @property
    def exists(self) -> bool:
        """Return True when the configuration file exists on the filesystem."""
        return os.path.isfile(self.file)

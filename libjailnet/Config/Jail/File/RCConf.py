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
"""Remove stale interface settings from the rc.conf file of a jail."""
import typing
import os.path

import libjailnet.errors
import libjailnet.Config.Jail.File


class RCConf(libjailnet.Config.Jail.File.ConfigTextFile):
    """The /etc/rc.conf file inside of a jail mountpoint."""

    NETWORK_PREFIXES = ("ifconfig", "ipv6")

    def __init__(
        self,
        mountpoint: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.mountpoint = mountpoint
        libjailnet.Config.Jail.File.ConfigTextFile.__init__(
            self,
            file=os.path.join(mountpoint, "etc", "rc.conf"),
            logger=logger
        )

    def strip_network_lines(self) -> typing.Optional[str]:
        """
        Remove all lines beginning with ifconfig or ipv6.

        Returns the previous file content when the file was changed, so that
        it can be restored. A missing file is skipped.
        """
        if self.exists is False:
            self.logger.spam(f"{self.path} does not exist - skipping")
            return None

        try:
            content = self.read_text()
            lines = content.split("\n")
            kept_lines = [
                line for line in lines
                if line.startswith(self.NETWORK_PREFIXES) is False
            ]
            if len(kept_lines) == len(lines):
                self.logger.debug(f"{self.path} has no interface settings")
                return None
            self.write_text("\n".join(kept_lines))
        except OSError as e:
            raise libjailnet.errors.RCConfError(
                path=self.path,
                reason=str(e),
                logger=self.logger
            )
        return content

    def restore(self, content: str) -> None:
        """Write back a previous file content."""
        try:
            self.write_text(content)
        except OSError as e:
            raise libjailnet.errors.RCConfError(
                path=self.path,
                reason=str(e),
                logger=self.logger
            )

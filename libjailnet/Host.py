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
"""libjailnet Host module."""
import typing
import contextlib
import os
import os.path
import threading

import libjailnet.errors
import libjailnet.helpers
import libjailnet.helpers_object
import libjailnet.Identifier
import libjailnet.Logger
import libjailnet.Types
import libjailnet.Config.Type.JSON

DEFAULT_CONFIG_FILE = "/usr/local/etc/jailnet.json"
CONFIG_FILE_ENV = "JAILNET_CONFIG"


class HostConfig(libjailnet.Config.Type.JSON.ConfigJSON):
    """
    Host configuration read from a JSON file.

    The file location defaults to /usr/local/etc/jailnet.json and can be
    changed with the JAILNET_CONFIG environment variable. A missing file
    results in the default configuration.
    """

    defaults: typing.Dict[str, typing.Any] = {
        "data_dir": "/var/db/jailnet",
        "jails_dir": None,
        "database": None,
        "identifier_length": libjailnet.Identifier.DEFAULT_LENGTH,
        "log_level": "info",
        "command_timeout": None
    }

    data: typing.Dict[str, typing.Any]

    def __init__(
        self,
        file: typing.Optional[str]=None,
        data: typing.Optional[typing.Dict[str, typing.Any]]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        if file is None:
            file = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
        libjailnet.Config.Type.JSON.ConfigJSON.__init__(
            self,
            file=file,
            logger=logger
        )
        if data is None:
            data = self.read()
        self.data = self._validate(data)

    def _validate(
        self,
        data: typing.Dict[str, typing.Any]
    ) -> typing.Dict[str, typing.Any]:
        unknown_keys = [x for x in data.keys() if x not in self.defaults]
        if len(unknown_keys) > 0:
            self._handle_error(f"unknown keys: {', '.join(unknown_keys)}")

        output = dict(self.defaults)
        output.update(data)

        for key in ("data_dir", "jails_dir", "database"):
            value = output[key]
            if value is None:
                continue
            try:
                output[key] = str(libjailnet.Types.AbsolutePath(value))
            except (TypeError, ValueError) as e:
                self._handle_error(f"{key}: {e}")

        if output["jails_dir"] is None:
            output["jails_dir"] = os.path.join(output["data_dir"], "jails")
        if output["database"] is None:
            output["database"] = os.path.join(
                output["data_dir"],
                "jailnet.json"
            )

        try:
            output["identifier_length"] = libjailnet.helpers.parse_int(
                output["identifier_length"]
            )
            libjailnet.Identifier.require_length(output["identifier_length"])
        except (TypeError, libjailnet.errors.ValidationError) as e:
            self._handle_error(f"identifier_length: {e}")

        if output["log_level"] not in libjailnet.Logger.Logger.LOG_LEVELS:
            self._handle_error(f"log_level: {output['log_level']} is invalid")

        if output["command_timeout"] is not None:
            try:
                output["command_timeout"] = float(output["command_timeout"])
            except (TypeError, ValueError):
                self._handle_error("command_timeout must be a number")

        return output

    def __getitem__(self, key: str) -> typing.Any:
        """Return a configuration value."""
        return self.data[key]


class JailLocks:
    """
    Registry of per-jail locks.

    Mutations of a jail hold its lock for the whole transition. Host wide
    operations hold the global lock and then visit jails one at a time.
    Statistics collection only ever tries to acquire locks.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: typing.Dict[int, threading.Lock] = {}
        self.global_lock = threading.Lock()
        self.stats_lock = threading.Lock()

    def get(self, ctid: int) -> threading.Lock:
        """Return the lock of a jail."""
        with self._registry_lock:
            if ctid not in self._locks:
                self._locks[ctid] = threading.Lock()
            return self._locks[ctid]

    @contextlib.contextmanager
    def jail(self, ctid: int) -> typing.Iterator[None]:
        """Hold the lock of a jail."""
        lock = self.get(ctid)
        with lock:
            yield

    def try_acquire(self, ctid: int) -> typing.Optional[threading.Lock]:
        """
        Acquire the lock of a jail without blocking.

        Returns the acquired lock, which the caller must release, or None
        when the jail is busy.
        """
        lock = self.get(ctid)
        if lock.acquire(blocking=False) is False:
            return None
        return lock


class HostGenerator:
    """Representation of the jail host and its shared services."""

    _database: 'libjailnet.Database.Database'

    def __init__(
        self,
        config: typing.Optional[typing.Union[
            HostConfig,
            typing.Dict[str, typing.Any]
        ]]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:

        self.logger = libjailnet.helpers_object.init_logger(self, logger)

        if isinstance(config, HostConfig):
            self.config = config
        else:
            self.config = HostConfig(data=config, logger=self.logger)

        self.locks = JailLocks()

    @property
    def data_dir(self) -> str:
        """Return the directory that holds all libjailnet data."""
        return str(self.config["data_dir"])

    @property
    def jails_dir(self) -> str:
        """Return the directory that holds the jail configurations."""
        return str(self.config["jails_dir"])

    @property
    def identifier_length(self) -> int:
        """Return the length of jail tokens."""
        return int(self.config["identifier_length"])

    @property
    def command_timeout(self) -> typing.Optional[float]:
        """Return the timeout of host commands in seconds."""
        return self.config["command_timeout"]

    def ensure_directories(self) -> None:
        """Create the data and jail directories if they do not exist."""
        libjailnet.helpers.makedirs_safe(self.data_dir, logger=self.logger)
        libjailnet.helpers.makedirs_safe(self.jails_dir, logger=self.logger)
        database_dir = os.path.dirname(str(self.config["database"]))
        libjailnet.helpers.makedirs_safe(database_dir, logger=self.logger)

    @property
    def database(self) -> 'libjailnet.Database.Database':
        """Return the lazy-loaded database."""
        try:
            return self._database
        except AttributeError:
            pass

        import libjailnet.Database
        self._database = libjailnet.Database.Database(
            file=str(self.config["database"]),
            identifier_length=self.identifier_length,
            logger=self.logger
        )
        return self._database

    @property
    def jail_configs(
        self
    ) -> 'libjailnet.Config.Jail.File.JailConf.JailConfStore':
        """Return the store of jail.conf files."""
        import libjailnet.Config.Jail.File.JailConf
        return libjailnet.Config.Jail.File.JailConf.JailConfStore(
            jails_dir=self.jails_dir,
            logger=self.logger
        )

    @property
    def switches(self) -> 'libjailnet.Switches.SwitchRegistry':
        """Return the switch registry."""
        import libjailnet.Switches
        return libjailnet.Switches.SwitchRegistry(
            database=self.database,
            logger=self.logger
        )

    @property
    def objects(self) -> 'libjailnet.NetworkObjects.NetworkObjectResolver':
        """Return the network object resolver."""
        import libjailnet.NetworkObjects
        return libjailnet.NetworkObjects.NetworkObjectResolver(
            database=self.database,
            logger=self.logger
        )

    @property
    def epairs(self) -> 'libjailnet.Epair.EpairProvisioner':
        """Return the epair provisioner."""
        import libjailnet.Epair
        return libjailnet.Epair.EpairProvisioner(
            timeout=self.command_timeout,
            logger=self.logger
        )

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
"""Host bridges that jail interfaces are attached to."""
import typing

import libjailnet.errors
import libjailnet.helpers_object
import libjailnet.Types

# MyPy
import libjailnet.Database  # noqa: F401


class Switch:
    """A switch backed by an if_bridge(4) interface."""

    def __init__(
        self,
        id: int,
        name: str,
        bridge_name: str
    ) -> None:
        self.id = int(id)
        self.name = str(name)
        self.bridge_name = str(bridge_name)

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Return the switch as JSON serializable dict."""
        return dict(id=self.id, name=self.name, bridge_name=self.bridge_name)

    def __repr__(self) -> str:
        """Return a short description of the switch."""
        return f"<Switch id={self.id} name={self.name} {self.bridge_name}>"


class SwitchRegistry:
    """Lookup of switches by their id."""

    def __init__(
        self,
        database: 'libjailnet.Database.Database',
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.database = database

    def get(self, switch_id: int) -> Switch:
        """Return a switch or raise SwitchNotFound."""
        return Switch(**self.database.get_switch_record(switch_id))

    def get_bridge_name(self, switch_id: int) -> str:
        """Return the bridge interface name of a switch."""
        return self.get(switch_id).bridge_name

    def list(self) -> typing.List[Switch]:
        """Return all switches ordered by id."""
        return [Switch(**x) for x in self.database.list_switch_records()]

    def create(
        self,
        name: str,
        bridge_name: str,
        switch_id: typing.Optional[int]=None
    ) -> Switch:
        """Register a switch."""
        try:
            bridge_name = str(libjailnet.Types.InterfaceName(bridge_name))
        except (TypeError, ValueError) as e:
            raise libjailnet.errors.ValidationError(
                message=f"Invalid bridge: {e}",
                logger=self.logger
            )
        with self.database.transaction() as transaction:
            new_id = transaction.create_switch(
                name=name,
                bridge_name=bridge_name,
                switch_id=switch_id
            )
        self.logger.verbose(f"Switch {name} ({bridge_name}) registered")
        return Switch(id=new_id, name=name, bridge_name=bridge_name)

    def delete(self, switch_id: int) -> None:
        """Remove a switch that no jail is attached to."""
        with self.database.transaction() as transaction:
            for data in transaction.document["attachments"].values():
                if data["switch_id"] != switch_id:
                    continue
                raise libjailnet.errors.StateConflictError(
                    message=(
                        f"Switch {switch_id} is used by jail {data['ctid']}"
                    ),
                    logger=self.logger
                )
            transaction.delete_switch(switch_id)
        self.logger.verbose(f"Switch {switch_id} removed")

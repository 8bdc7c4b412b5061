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
"""Named network objects holding IP addresses, networks and MACs."""
import typing

import libjailnet.errors
import libjailnet.helpers_object
import libjailnet.IPAddress
import libjailnet.MacAddress

# MyPy
import libjailnet.Database  # noqa: F401

OBJECT_TYPES = ("Host", "Network", "Mac")

# fields of an attachment that may not share their object with another one
EXCLUSIVE_FIELDS = ("mac", "ipv4", "ipv6")


class NetworkObject:
    """A named list of address values."""

    def __init__(
        self,
        id: int,
        name: str,
        type: str,
        values: typing.List[str]
    ) -> None:
        self.id = int(id)
        self.name = str(name)
        self.type = str(type)
        self.values = list(values)

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Return the object as JSON serializable dict."""
        return dict(
            id=self.id,
            name=self.name,
            type=self.type,
            values=list(self.values)
        )

    def __repr__(self) -> str:
        """Return a short description of the object."""
        return f"<NetworkObject id={self.id} {self.type} {self.name}>"


def validate(
    object_type: str,
    values: typing.List[str],
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> None:
    """Raise InvalidNetworkObject when type or values are not valid."""
    if object_type not in OBJECT_TYPES:
        raise libjailnet.errors.InvalidNetworkObject(
            reason=f"unknown type {object_type}",
            logger=logger
        )

    if len(values) == 0:
        raise libjailnet.errors.InvalidNetworkObject(
            reason=f"values cannot be empty for type {object_type}",
            logger=logger
        )

    versions = set()
    for value in values:
        if (isinstance(value, str) is False) or (value == ""):
            raise libjailnet.errors.InvalidNetworkObject(
                reason=f"value cannot be empty for type {object_type}",
                logger=logger
            )

        if object_type == "Host":
            if libjailnet.IPAddress.is_ipv4_address(value):
                versions.add(4)
            elif libjailnet.IPAddress.is_ipv6_address(value):
                versions.add(6)
            else:
                raise libjailnet.errors.InvalidNetworkObject(
                    reason=f"invalid host value {value}",
                    logger=logger
                )
        elif object_type == "Network":
            if libjailnet.IPAddress.is_ipv4_cidr(value):
                versions.add(4)
            elif libjailnet.IPAddress.is_ipv6_cidr(value):
                versions.add(6)
            else:
                raise libjailnet.errors.InvalidNetworkObject(
                    reason=f"invalid network value {value}",
                    logger=logger
                )
        elif object_type == "Mac":
            try:
                libjailnet.MacAddress.MacAddress(value, logger=logger)
            except libjailnet.errors.InvalidMacAddress:
                raise libjailnet.errors.InvalidNetworkObject(
                    reason=f"invalid MAC address {value}",
                    logger=logger
                )

    if len(versions) > 1:
        raise libjailnet.errors.InvalidNetworkObject(
            reason=f"cannot mix IPv4 and IPv6 in {object_type} values",
            logger=logger
        )


class NetworkObjectResolver:
    """Resolve, create and delete network objects."""

    def __init__(
        self,
        database: 'libjailnet.Database.Database',
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.database = database

    def get(self, object_id: int) -> NetworkObject:
        """Return a network object or raise NetworkObjectNotFound."""
        return NetworkObject(**self.database.get_object_record(object_id))

    def list(self) -> typing.List[NetworkObject]:
        """Return all network objects ordered by id."""
        return [
            NetworkObject(**x)
            for x in self.database.list_object_records()
        ]

    def resolve_value(self, object_id: int) -> str:
        """
        Return the single value of a network object.

        Objects without values or with more than one value cannot be
        resolved to a literal address.
        """
        network_object = self.get(object_id)
        count = len(network_object.values)
        if count != 1:
            raise libjailnet.errors.InvalidNetworkObject(
                reason=(
                    f"object {object_id} has {count} values, "
                    "but exactly one is required"
                ),
                logger=self.logger
            )
        return str(network_object.values[0])

    def get_users(
        self,
        object_id: int
    ) -> typing.List['libjailnet.NetworkAttachment.NetworkAttachment']:
        """Return attachments that use the object as MAC or address."""
        users = []
        for attachment in self.database.list_attachments():
            for field in EXCLUSIVE_FIELDS:
                if attachment.get_reference(field) == object_id:
                    users.append(attachment)
                    break
        return users

    def is_in_use(self, object_id: int) -> bool:
        """Return True when an attachment uses the object exclusively."""
        self.get(object_id)
        return len(self.get_users(object_id)) > 0

    def create_object(
        self,
        name: str,
        object_type: str,
        values: typing.List[str],
        transaction: typing.Optional[
            'libjailnet.Database.DatabaseTransaction'
        ]=None
    ) -> NetworkObject:
        """
        Validate and store a network object with a unique name.

        When a transaction is given, the object is created within it and
        only persisted once the transaction commits.
        """
        validate(object_type, values, logger=self.logger)
        if transaction is None:
            with self.database.transaction() as new_transaction:
                return self.create_object(
                    name,
                    object_type,
                    values,
                    transaction=new_transaction
                )

        if transaction.object_name_exists(name) is True:
            raise libjailnet.errors.InvalidNetworkObject(
                reason=f"an object named {name} already exists",
                logger=self.logger
            )
        object_id = transaction.create_object(name, object_type, values)
        self.logger.verbose(f"Network object {name} ({object_type}) created")
        return NetworkObject(
            id=object_id,
            name=name,
            type=object_type,
            values=values
        )

    def delete_object(self, object_id: int) -> None:
        """Delete an object that is not referenced by any attachment."""
        for attachment in self.database.list_attachments():
            if object_id in attachment.references.values():
                raise libjailnet.errors.NetworkObjectInUse(
                    object_id=object_id,
                    logger=self.logger
                )
        with self.database.transaction() as transaction:
            transaction.delete_object(object_id)
        self.logger.verbose(f"Network object {object_id} deleted")

    def get_unique_name(
        self,
        base: str,
        transaction: typing.Optional[
            'libjailnet.Database.DatabaseTransaction'
        ]=None
    ) -> str:
        """Return base or base with the first free numeric suffix."""
        if transaction is None:
            taken = set([x.name for x in self.list()])
        else:
            taken = set([
                x["name"] for x in transaction.document["objects"].values()
            ])
        name = base
        index = 0
        while name in taken:
            index += 1
            name = f"{base}-{index}"
        return name

    def create_mac_object(
        self,
        jail_name: str,
        switch_name: str,
        mac_address: typing.Optional[str]=None,
        transaction: typing.Optional[
            'libjailnet.Database.DatabaseTransaction'
        ]=None
    ) -> NetworkObject:
        """
        Create a MAC object for an attachment.

        The object is named `<jail>-<switch>`. When that name is taken,
        `-1`, `-2` and so on are appended until the name is unused. Without
        a given address a random locally administered one is generated.
        """
        if mac_address is None:
            mac_address = libjailnet.MacAddress.generate_random_mac()
        name = self.get_unique_name(
            f"{jail_name}-{switch_name}",
            transaction=transaction
        )
        return self.create_object(
            name,
            "Mac",
            [mac_address],
            transaction=transaction
        )

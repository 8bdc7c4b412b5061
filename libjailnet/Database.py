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
"""JSON document store of jails, attachments, switches and objects."""
import typing
import contextlib
import copy
import threading

import libjailnet.errors
import libjailnet.helpers
import libjailnet.Identifier
import libjailnet.Jail
import libjailnet.NetworkAttachment
import libjailnet.Config.Type.JSON

DATABASE_VERSION = 1
COLLECTIONS = ("jails", "attachments", "switches", "objects")


def _empty_document() -> typing.Dict[str, typing.Any]:
    document: typing.Dict[str, typing.Any] = dict(
        version=DATABASE_VERSION,
        sequences={}
    )
    for collection in COLLECTIONS:
        document[collection] = {}
        document["sequences"][collection] = 0
    return document


class DatabaseTransaction:
    """
    Narrow update commands on a private copy of the database document.

    The copy replaces the stored document only when the transaction is
    committed, so a failed transaction leaves the file untouched.
    """

    def __init__(
        self,
        document: typing.Dict[str, typing.Any],
        database: 'Database'
    ) -> None:
        self.document = document
        self.database = database
        self.logger = database.logger

    def _next_id(self, collection: str) -> int:
        sequences = self.document["sequences"]
        sequences[collection] = int(sequences.get(collection, 0)) + 1
        return int(sequences[collection])

    def _get_jail_record(self, ctid: int) -> typing.Dict[str, typing.Any]:
        try:
            return typing.cast(
                typing.Dict[str, typing.Any],
                self.document["jails"][str(ctid)]
            )
        except KeyError:
            raise libjailnet.errors.JailNotFound(ctid=ctid, logger=self.logger)

    # jails

    def create_jail(self, jail: 'libjailnet.Jail.Jail') -> None:
        """Insert a new jail record."""
        if str(jail.ctid) in self.document["jails"].keys():
            raise libjailnet.errors.JailAlreadyExists(
                ctid=jail.ctid,
                logger=self.logger
            )
        self.document["jails"][str(jail.ctid)] = jail.to_dict()

    def delete_jail(self, ctid: int) -> None:
        """Delete a jail record and its attachments."""
        self._get_jail_record(ctid)
        del self.document["jails"][str(ctid)]
        attachments = self.document["attachments"]
        for key in list(attachments.keys()):
            if attachments[key]["ctid"] == ctid:
                del attachments[key]

    def set_inherit_flags(self, ctid: int, ipv4: bool, ipv6: bool) -> None:
        """Change only the inherit flags of a jail."""
        record = self._get_jail_record(ctid)
        record["inherit_ipv4"] = (ipv4 is True)
        record["inherit_ipv6"] = (ipv6 is True)

    def set_memory(self, ctid: int, memory: int) -> None:
        """Change only the memory limit of a jail."""
        record = self._get_jail_record(ctid)
        record["memory"] = int(memory)

    def set_cpuset(self, ctid: int, cpuset: typing.List[int]) -> None:
        """Change only the CPU cores of a jail."""
        record = self._get_jail_record(ctid)
        record["cpuset"] = [int(x) for x in cpuset]
        record["cores"] = len(cpuset)

    # attachments

    def insert_attachment(
        self,
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment'
    ) -> int:
        """Store a new attachment and return its id."""
        self._get_jail_record(attachment.ctid)
        attachment.id = self._next_id("attachments")
        self.document["attachments"][str(attachment.id)] = attachment.to_dict()
        return attachment.id

    def delete_attachment(self, attachment_id: int) -> None:
        """Delete an attachment."""
        try:
            del self.document["attachments"][str(attachment_id)]
        except KeyError:
            raise libjailnet.errors.NotFoundError(
                message=f"Attachment {attachment_id} does not exist",
                logger=self.logger
            )

    # switches

    def create_switch(
        self,
        name: str,
        bridge_name: str,
        switch_id: typing.Optional[int]=None
    ) -> int:
        """Store a new switch and return its id."""
        if switch_id is None:
            switch_id = self._next_id("switches")
        elif str(switch_id) in self.document["switches"].keys():
            raise libjailnet.errors.ValidationError(
                message=f"Switch {switch_id} already exists",
                logger=self.logger
            )
        else:
            sequences = self.document["sequences"]
            sequences["switches"] = max(
                int(sequences.get("switches", 0)),
                switch_id
            )
        self.document["switches"][str(switch_id)] = dict(
            id=switch_id,
            name=name,
            bridge_name=bridge_name
        )
        return switch_id

    def delete_switch(self, switch_id: int) -> None:
        """Delete a switch."""
        try:
            del self.document["switches"][str(switch_id)]
        except KeyError:
            raise libjailnet.errors.SwitchNotFound(
                switch_id=switch_id,
                logger=self.logger
            )

    # network objects

    def create_object(
        self,
        name: str,
        object_type: str,
        values: typing.List[str]
    ) -> int:
        """Store a new network object and return its id."""
        object_id = self._next_id("objects")
        self.document["objects"][str(object_id)] = dict(
            id=object_id,
            name=name,
            type=object_type,
            values=list(values)
        )
        return object_id

    def delete_object(self, object_id: int) -> None:
        """Delete a network object."""
        try:
            del self.document["objects"][str(object_id)]
        except KeyError:
            raise libjailnet.errors.NetworkObjectNotFound(
                object_id=object_id,
                logger=self.logger
            )

    def delete_unused_object(self, object_id: int) -> bool:
        """Delete a network object unless an attachment references it."""
        for data in self.document["attachments"].values():
            attachment = libjailnet.NetworkAttachment.NetworkAttachment(
                **data
            )
            if object_id in attachment.references.values():
                return False
        self.delete_object(object_id)
        return True

    def object_name_exists(self, name: str) -> bool:
        """Return True if an object with the name exists."""
        for data in self.document["objects"].values():
            if data["name"] == name:
                return True
        return False


class Database(libjailnet.Config.Type.JSON.ConfigJSON):
    """
    Database of the network synthesizer stored in a single JSON file.

    Reads always return fresh copies of the stored records. All changes go
    through `transaction()`, which writes the full document at once.
    """

    _lock: threading.RLock

    def __init__(
        self,
        file: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None,
        identifier_length: int=libjailnet.Identifier.DEFAULT_LENGTH
    ) -> None:
        libjailnet.Config.Type.JSON.ConfigJSON.__init__(
            self,
            file=file,
            logger=logger
        )
        self.identifier_length = identifier_length
        self._lock = threading.RLock()

    def _handle_error(self, reason: str) -> typing.NoReturn:
        raise libjailnet.errors.DatabaseError(
            path=self.file,
            reason=reason,
            logger=self.logger
        )

    def load(self) -> typing.Dict[str, typing.Any]:
        """Return the stored document completed with empty collections."""
        with self._lock:
            data = self.read()
        document = _empty_document()
        if len(data) == 0:
            return document
        if data.get("version", DATABASE_VERSION) != DATABASE_VERSION:
            self._handle_error(f"unsupported version {data['version']}")
        for collection in COLLECTIONS:
            value = data.get(collection, {})
            if isinstance(value, dict) is False:
                self._handle_error(f"{collection} must be an object")
            document[collection] = value
        document["sequences"].update(data.get("sequences", {}))
        return document

    @contextlib.contextmanager
    def transaction(self) -> typing.Iterator[DatabaseTransaction]:
        """
        Apply narrow update commands and commit them at once.

        The database lock is held from reading the current document until
        the changed document was written.
        """
        with self._lock:
            document = copy.deepcopy(self.load())
            transaction = DatabaseTransaction(document, database=self)
            yield transaction
            self.write(transaction.document)
            self.logger.spam("Database transaction committed")

    # queries

    def _get_attachments(
        self,
        document: typing.Dict[str, typing.Any],
        ctid: typing.Optional[int]=None
    ) -> typing.List['libjailnet.NetworkAttachment.NetworkAttachment']:
        attachments = [
            libjailnet.NetworkAttachment.NetworkAttachment.from_dict(x)
            for x in document["attachments"].values()
            if (ctid is None) or (x["ctid"] == ctid)
        ]
        return sorted(attachments, key=lambda x: x.id)

    def _to_jail(
        self,
        document: typing.Dict[str, typing.Any],
        record: typing.Dict[str, typing.Any]
    ) -> 'libjailnet.Jail.Jail':
        return libjailnet.Jail.Jail.from_dict(
            record,
            attachments=self._get_attachments(document, ctid=record["ctid"]),
            identifier_length=self.identifier_length
        )

    def get_jail(self, ctid: int) -> 'libjailnet.Jail.Jail':
        """Return a jail with its attachments in insertion order."""
        document = self.load()
        try:
            record = document["jails"][str(ctid)]
        except KeyError:
            raise libjailnet.errors.JailNotFound(ctid=ctid, logger=self.logger)
        return self._to_jail(document, record)

    def list_jails(self) -> typing.List['libjailnet.Jail.Jail']:
        """Return all jails ordered by ctid."""
        document = self.load()
        records = document["jails"].values()
        jails = [self._to_jail(document, x) for x in records]
        return sorted(jails, key=lambda x: x.ctid)

    def list_attachments(
        self,
        ctid: typing.Optional[int]=None
    ) -> typing.List['libjailnet.NetworkAttachment.NetworkAttachment']:
        """Return the attachments of one or all jails."""
        return self._get_attachments(self.load(), ctid=ctid)

    def get_switch_record(
        self,
        switch_id: int
    ) -> typing.Dict[str, typing.Any]:
        """Return the stored data of a switch."""
        try:
            return dict(self.load()["switches"][str(switch_id)])
        except KeyError:
            raise libjailnet.errors.SwitchNotFound(
                switch_id=switch_id,
                logger=self.logger
            )

    def list_switch_records(
        self
    ) -> typing.List[typing.Dict[str, typing.Any]]:
        """Return the stored data of all switches."""
        records = self.load()["switches"].values()
        return sorted([dict(x) for x in records], key=lambda x: x["id"])

    def get_object_record(
        self,
        object_id: int
    ) -> typing.Dict[str, typing.Any]:
        """Return the stored data of a network object."""
        try:
            return dict(self.load()["objects"][str(object_id)])
        except KeyError:
            raise libjailnet.errors.NetworkObjectNotFound(
                object_id=object_id,
                logger=self.logger
            )

    def list_object_records(self) -> typing.List[typing.Dict[str, typing.Any]]:
        """Return the stored data of all network objects."""
        records = self.load()["objects"].values()
        return sorted([dict(x) for x in records], key=lambda x: x["id"])

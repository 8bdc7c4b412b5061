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
"""Print lists of records in the formats supported by the CLI."""
import json
import typing

import texttable

supported_output_formats = ['table', 'csv', 'list', 'json']


def print_table(
    data: typing.List[typing.List[str]],
    columns: typing.List[str],
    show_header: bool=True,
    sort_key: typing.Optional[str]=None
) -> None:
    """Print rows as text table."""
    table = texttable.Texttable(max_width=0)
    table.set_cols_dtype(["t"] * len(columns))

    table_head = (list(x.upper() for x in columns))
    table_data = list(data)

    try:
        sort_index: typing.Optional[int] = columns.index(str(sort_key))
    except ValueError:
        sort_index = None

    if sort_index is not None:
        table_data.sort(key=lambda x: x[sort_index])

    if show_header:
        table.add_rows([table_head] + table_data)
    else:
        table.add_rows(table_data, header=False)

    print(table.draw())


def print_list(
    data: typing.List[typing.List[str]],
    columns: typing.List[str],
    show_header: bool=True,
    separator: str=";"
) -> None:
    """Print rows with a separator between the values."""
    if show_header is True:
        print(separator.join(columns).upper())

    for row in data:
        print(separator.join(row))


def print_json(
    data: typing.List[typing.List[str]],
    columns: typing.List[str]
) -> None:
    """Print rows as list of JSON objects."""
    output = [dict(zip(columns, row)) for row in data]
    print(json.dumps(output, indent=2, sort_keys=True))


def print_records(
    data: typing.List[typing.List[str]],
    columns: typing.List[str],
    output_format: str="table",
    show_header: bool=True,
    sort_key: typing.Optional[str]=None
) -> None:
    """Print rows in the requested output format."""
    if output_format == "list":
        print_list(data, columns, show_header, "\t")
    elif output_format == "csv":
        print_list(data, columns, show_header, ";")
    elif output_format == "json":
        print_json(data, columns)
    else:
        print_table(data, columns, show_header, sort_key)

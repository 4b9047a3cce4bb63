"""
Protobuf schema of the backup file.

The schema is declared as a FileDescriptorProto and loaded into a private
descriptor pool at import time, so no protoc step is needed. Equivalent
.proto (proto3, package libbackup.v1):

    message BackupUnit {
      string key = 1;  string name = 2;  string scanlator = 3;
      bool read = 4;  bool bookmark = 5;  int64 progress = 6;
      int64 date_upload = 7;  int64 date_fetch = 8;  double number = 9;
      int64 source_order = 10;
    }
    message BackupCategory { string name = 1; int64 order = 2; int64 flags = 3; }
    message BackupTrack {
      int64 site_id = 1;  int64 remote_id = 2;  int64 library_id = 3;
      string title = 4;  double last_read = 5;  int64 total_chapters = 6;
      int64 status = 7;  double score = 8;  string remote_url = 9;
      int64 start_date = 10;  int64 finish_date = 11;
    }
    message BackupItem {
      int64 source_id = 1;  string key = 2;  string title = 3;
      string artist = 4;  string author = 5;  string description = 6;
      repeated string tags = 7;  int64 status = 8;  string cover = 9;
      bool custom_cover = 10;  int64 last_update = 11;  int64 last_init = 12;
      int64 date_added = 13;  int64 viewer_mode = 14;  int64 flags = 15;
      repeated BackupUnit units = 16;  repeated int64 categories = 17;
      repeated BackupTrack tracks = 18;
    }
    message Backup {
      repeated BackupItem library = 1;
      repeated BackupCategory categories = 2;
    }

Invariants:
    - Every integer field is int64, the range of a SQLite INTEGER, so any
      value a store can hold encodes

How to change safely:
    - Never renumber or reuse a field number
    - Only add fields; readers ignore unknown fields
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "libbackup.v1"

_F = descriptor_pb2.FieldDescriptorProto

_STRING = _F.TYPE_STRING
_BOOL = _F.TYPE_BOOL
_INT64 = _F.TYPE_INT64
_DOUBLE = _F.TYPE_DOUBLE
_MESSAGE = _F.TYPE_MESSAGE

# (name, number, type, repeated, message type)
_MESSAGES: dict[str, list[tuple[str, int, int, bool, str | None]]] = {
    "BackupUnit": [
        ("key", 1, _STRING, False, None),
        ("name", 2, _STRING, False, None),
        ("scanlator", 3, _STRING, False, None),
        ("read", 4, _BOOL, False, None),
        ("bookmark", 5, _BOOL, False, None),
        ("progress", 6, _INT64, False, None),
        ("date_upload", 7, _INT64, False, None),
        ("date_fetch", 8, _INT64, False, None),
        ("number", 9, _DOUBLE, False, None),
        ("source_order", 10, _INT64, False, None),
    ],
    "BackupCategory": [
        ("name", 1, _STRING, False, None),
        ("order", 2, _INT64, False, None),
        ("flags", 3, _INT64, False, None),
    ],
    "BackupTrack": [
        ("site_id", 1, _INT64, False, None),
        ("remote_id", 2, _INT64, False, None),
        ("library_id", 3, _INT64, False, None),
        ("title", 4, _STRING, False, None),
        ("last_read", 5, _DOUBLE, False, None),
        ("total_chapters", 6, _INT64, False, None),
        ("status", 7, _INT64, False, None),
        ("score", 8, _DOUBLE, False, None),
        ("remote_url", 9, _STRING, False, None),
        ("start_date", 10, _INT64, False, None),
        ("finish_date", 11, _INT64, False, None),
    ],
    "BackupItem": [
        ("source_id", 1, _INT64, False, None),
        ("key", 2, _STRING, False, None),
        ("title", 3, _STRING, False, None),
        ("artist", 4, _STRING, False, None),
        ("author", 5, _STRING, False, None),
        ("description", 6, _STRING, False, None),
        ("tags", 7, _STRING, True, None),
        ("status", 8, _INT64, False, None),
        ("cover", 9, _STRING, False, None),
        ("custom_cover", 10, _BOOL, False, None),
        ("last_update", 11, _INT64, False, None),
        ("last_init", 12, _INT64, False, None),
        ("date_added", 13, _INT64, False, None),
        ("viewer_mode", 14, _INT64, False, None),
        ("flags", 15, _INT64, False, None),
        ("units", 16, _MESSAGE, True, "BackupUnit"),
        ("categories", 17, _INT64, True, None),
        ("tracks", 18, _MESSAGE, True, "BackupTrack"),
    ],
    "Backup": [
        ("library", 1, _MESSAGE, True, "BackupItem"),
        ("categories", 2, _MESSAGE, True, "BackupCategory"),
    ],
}


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    """Build the FileDescriptorProto for the backup schema."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="libbackup/v1/backup.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _MESSAGES.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for name, number, field_type, repeated, type_name in fields:
            field_proto = message_proto.field.add(
                name=name,
                number=number,
                type=field_type,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name is not None:
                field_proto.type_name = f".{PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(build_file_descriptor().SerializeToString())


def _message_class(name: str) -> type:
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


BackupMessage = _message_class("Backup")
BackupItemMessage = _message_class("BackupItem")
BackupUnitMessage = _message_class("BackupUnit")
BackupCategoryMessage = _message_class("BackupCategory")
BackupTrackMessage = _message_class("BackupTrack")

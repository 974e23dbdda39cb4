"""Lakeside wire protocol: framing, cipher, protobuf schemas and packet builders."""

#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "revalidator",
# ]
#
# [tool.uv.sources]
# revalidator = { path = "../", editable = true }
# ///

import sqlite3

from revalidator import CacheClient, SQLiteStorage

client = CacheClient(storage=SQLiteStorage(connection=sqlite3.connect(":memory:")))

client.get("https://www.python.org/")
# The second request carries If-None-Match / If-Modified-Since when the page has validators.
response = client.get("https://www.python.org/")
print(response.extensions)

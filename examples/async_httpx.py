#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "revalidator[sqlite]",
# ]
#
# [tool.uv.sources]
# revalidator = { path = "../", editable = true }
# ///

import asyncio
import logging
from typing import cast

import anysqlite

from revalidator import AsyncCacheClient, AsyncSQLiteStorage, ResponseMetadata


async def fetch_and_print(client, url: str):
    print(f"\n➡ Sending request to {url}...")
    response = await client.get(url)
    meta = cast(ResponseMetadata, response.extensions)

    print(f"🚀 Was Stored: {meta['revalidator_stored']}")
    print(f"🔄 From Cache: {meta['revalidator_from_cache']}")
    print(f"📍 Revalidated: {meta['revalidator_revalidated']}")


async def main():
    url = "https://www.python.org/"
    storage = AsyncSQLiteStorage(connection=await anysqlite.connect(":memory:"))
    async with AsyncCacheClient(storage=storage) as client:
        await fetch_and_print(client, url)
        await fetch_and_print(client, url)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    logging.getLogger("revalidator").setLevel(logging.DEBUG)
    asyncio.run(main())

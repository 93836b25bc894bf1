"""Filesystem example for nodefs"""

import asyncio
from datetime import datetime

from nodefs import FsOptions, NodeFS


async def main():
    # Open a virtual filesystem stored in a database file
    nfs = NodeFS.open(FsOptions(backend="turso", path="filesystem-demo.db"))

    # Write a file (parents first, there is no implicit mkdir)
    print("Writing file...")
    await nfs.promises.mkdir("/documents", {"recursive": True})
    await nfs.promises.write_file("/documents/readme.txt", "Hello, world!")

    # Read the file
    print("\nReading file...")
    content = await nfs.promises.read_file("/documents/readme.txt", "utf8")
    print(f"Content: {content}")

    # Get file stats
    print("\nFile stats:")
    stats = await nfs.promises.stat("/documents/readme.txt")
    print(f"  Inode: {stats.ino}")
    print(f"  Size: {stats.size} bytes")
    print(f"  Mode: {oct(stats.mode)}")
    print(f"  Links: {stats.nlink}")
    print(f"  Is file: {stats.is_file()}")
    print(f"  Is directory: {stats.is_directory()}")
    print(f"  Modified: {datetime.fromtimestamp(stats.mtime_ms / 1000).isoformat()}")

    # Blocking and callback forms share the same binding
    nfs.fs.write_file_sync("/documents/notes.txt", "Some notes")
    done = asyncio.get_running_loop().create_future()
    nfs.fs.readdir("/documents", lambda err, names=None: done.set_result(names))
    print(f"\nListing /documents: {await done}")

    # Stream a file in small chunks
    print("\nStreaming readme.txt:")
    async for chunk in nfs.fs.create_read_stream("/documents/readme.txt", {"high_water_mark": 5}):
        print(f"  {chunk!r}")

    # Walk a directory page by page
    print("\nListing / with types:")
    async with await nfs.promises.opendir("/") as d:
        async for entry in d:
            kind = "dir" if entry.is_directory() else "file"
            print(f"  {entry.name} ({kind})")

    nfs.close()


if __name__ == "__main__":
    asyncio.run(main())

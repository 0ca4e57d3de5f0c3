"""Command-line tools for chunkwise.

- ``python -m chunkwise.cli ingest`` -- embed and store a text file, resuming
  after the last committed chunk.
- ``python -m chunkwise.cli status`` -- compare stored records with the
  chunks a file would produce.
- ``python -m chunkwise.cli chat`` -- interactive question answering over an
  ingested source.
- ``python -m chunkwise.cli purge`` -- delete a source's records.
"""

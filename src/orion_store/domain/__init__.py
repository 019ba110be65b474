"""Pure domain logic: versions, release resolution and download lifecycle."""

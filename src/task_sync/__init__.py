"""Client-side task synchronization: backlog upload, merge of server changes, synch key commit."""

__version__ = "0.1.0"

"""A small TCP chat server and client, with a UDP-to-serial relay."""

__version__ = "0.1.0"
__all__ = ["protocol", "client", "server", "serialserver"]
"""
pkitool: local certificate authority management.

Creates, stores, lists, inspects and deletes X.509 certificate / RSA
private key pairs in a flat directory, with a root CA → intermediate CA →
leaf hierarchy.

Built on the Railway-Oriented Programming (ROP) framework in
pkitool.railway for explicit, composable error handling.
"""

__version__ = "0.1.0"

"""
nfe_downloader — NF-e document builder for lists of access keys.

Decodes 44-digit NF-e access keys, checks that the PKCS#12 signing
credential is usable, and writes one nfeProc XML document per key.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"

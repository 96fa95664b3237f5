"""
dfe_core — access keys and signing certificates for Brazilian DF-e.

Builds and validates the 44-digit access key of electronic fiscal documents
(NF-e, NFC-e, CT-e, MDF-e) with its Modulo-11 check digit, and resolves
ICP-Brasil certificates from PKCS#12 containers, installed-certificate
directories or PKCS#11 tokens.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"

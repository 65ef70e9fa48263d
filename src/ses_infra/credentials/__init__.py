"""Credentials verification and permission probing."""

from ses_infra.credentials.verifier import CredentialsValidator

__all__ = ['CredentialsValidator']

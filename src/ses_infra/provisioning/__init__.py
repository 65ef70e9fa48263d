"""Email event infrastructure provisioning.

This package contains the resource naming and policy helpers, the signed
SES v2 client and the pipeline orchestrator that sequences resource
creation.
"""

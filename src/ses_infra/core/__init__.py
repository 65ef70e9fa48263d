"""Core components for SES event infrastructure provisioning.

This module contains the foundational components including AWS client
management, configuration handling and the result types shared by every
provider call.
"""

"""SES Event Infrastructure - Main Package.

This package provisions the AWS resources needed to track outbound email
events (SQS queues, SNS topic, SES configuration set) and verifies the
credentials used to create them.
"""

__version__ = "1.0.0"
__author__ = "SES Event Infrastructure Team"

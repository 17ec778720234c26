"""Shared DynamoDB utilities.

This package centralizes:
- boto3 resource configuration
- the store call wrapper (error mapping, optional app-layer retry)
- typed, expressive errors
- the document store interface and its boto3 implementation

"""

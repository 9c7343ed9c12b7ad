"""Test execution with a checksum-keyed result cache."""

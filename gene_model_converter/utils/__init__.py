#!/usr/bin/env python3

"""
Utilities for progress reporting and performance monitoring.
"""

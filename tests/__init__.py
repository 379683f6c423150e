"""Test suite for spinfield.

Unit tests per component plus statistical checks of the dynamics; CUDA and
Triton tests skip on hosts without them.
"""

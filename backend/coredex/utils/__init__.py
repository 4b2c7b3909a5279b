"""
Text and scoring helpers for normalizing model replies.
"""
from .verdict_parser import VerdictRecord, normalize

__all__ = ['VerdictRecord', 'normalize']

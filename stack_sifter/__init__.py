"""
Stack Sifter

A batch job that fetches new posts from syndication feeds, checks them
against natural-language rules with a remote language model, and notifies
Slack channels, email addresses or webhooks about the matches.
"""

__version__ = "0.1.0"
__author__ = "Stack Sifter Team"

"""Context-building modules for gathering release metadata.

These modules fetch data from GitHub and assemble it into the structured
ReleaseContext the drafting stage works from.
"""

"""
git/ - Git Integration
======================
Thin pygit2 wrapper: current branch lookup, main branch detection and
hook installation.
"""

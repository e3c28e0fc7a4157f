"""
Built data sync for LFS-tracked map assets.
"""

class FakeAssetSource:
    """In-memory stand-in for GitLfsClient."""

    def __init__(self, assets, tracking_enabled=True, clean=True):
        self.assets = list(assets)
        self.tracking_enabled = tracking_enabled
        self.clean = clean

    def is_tracking_enabled(self):
        return self.tracking_enabled

    def is_working_copy_clean(self):
        return self.clean

    def iter_tracked_assets(self):
        return iter(self.assets)

from django.apps import AppConfig


class BuiltDataConfig(AppConfig):
    name = "builtdata"
    verbose_name = "Built Data Sync"

"""
Closed vocabularies (StrEnums) shared by models, coaching and the CLI.

Modules
-------
shot_taxonomy : taste, adjustment, confidence, tier, trend, advice and
                milestone enums.
"""

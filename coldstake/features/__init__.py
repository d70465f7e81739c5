"""Feature modules for the cold staking wallet.

- cold_staking: "Create cold staking setup" form, its background balance
  refresh and fee estimation, and the delegation pipeline
"""

from coldstake.features import cold_staking

__all__ = ["cold_staking"]

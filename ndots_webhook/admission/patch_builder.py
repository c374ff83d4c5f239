"""Minimal JSON Patch construction for the Pod ndots option.

The builder inspects the Pod's current DNS state and returns at most one
operation, chosen from this matrix (first match wins):

======================================  =======  ==================================
DNS state                               op       path
======================================  =======  ==================================
no ``spec.dnsConfig``                   add      /spec/dnsConfig
dnsConfig without options (or empty)    add      /spec/dnsConfig/options
options without an "ndots" entry        add      /spec/dnsConfig/options/-
"ndots" entry already at desired value  (none)
"ndots" entry with other/absent value   replace  /spec/dnsConfig/options/{i}/value
======================================  =======  ==================================

Applying the returned operation and building again always yields no patch.
"""

from typing import Optional, Sequence

from ndots_webhook.core.schema.patch import OP_ADD, OP_REPLACE, PatchOperation
from ndots_webhook.core.schema.pod import DnsConfig, DnsOption

NDOTS_OPTION = "ndots"

DNS_CONFIG_PATH = "/spec/dnsConfig"
OPTIONS_PATH = DNS_CONFIG_PATH + "/options"


def find_ndots_index(options: Sequence[DnsOption]) -> int:
    """Return the index of the first "ndots" option, or -1 if none.

    Duplicate entries are left alone; only the first one is considered.
    """
    for i, option in enumerate(options):
        if option.name == NDOTS_OPTION:
            return i
    return -1


class PatchBuilder:
    """Builds the smallest patch that sets ndots to the desired value."""

    def build(
        self, dns_config: Optional[DnsConfig], desired_value: str
    ) -> Optional[PatchOperation]:
        """Build the patch operation for one Pod.

        Args:
            dns_config: Pod's DNS configuration state, None when absent
            desired_value: ndots value as a decimal string (e.g., "2")

        Returns:
            PatchOperation to apply, or None when the Pod already matches
        """
        entry = {"name": NDOTS_OPTION, "value": desired_value}

        if dns_config is None:
            return PatchOperation(OP_ADD, DNS_CONFIG_PATH, {"options": [entry]})

        # The API server omits empty lists, so empty and absent are one case
        if not dns_config.options:
            return PatchOperation(OP_ADD, OPTIONS_PATH, [entry])

        idx = find_ndots_index(dns_config.options)
        if idx == -1:
            return PatchOperation(OP_ADD, OPTIONS_PATH + "/-", entry)

        if dns_config.options[idx].value == desired_value:
            return None

        return PatchOperation(OP_REPLACE, f"{OPTIONS_PATH}/{idx}/value", desired_value)

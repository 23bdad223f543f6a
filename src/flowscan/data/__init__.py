"""Price, institutional flow and name collaborators."""

from flowscan.data.sources import (ChainedNameLookup, CSVFlowSource,
                                   CSVPriceSource, FallbackPriceSource,
                                   FlowSource, MappingNameLookup, NameLookup,
                                   PriceSource, YahooPriceSource,
                                   resolve_flow_source, resolve_price_source)

__all__ = [
    "PriceSource",
    "FlowSource",
    "NameLookup",
    "YahooPriceSource",
    "CSVPriceSource",
    "FallbackPriceSource",
    "CSVFlowSource",
    "MappingNameLookup",
    "ChainedNameLookup",
    "resolve_price_source",
    "resolve_flow_source",
]

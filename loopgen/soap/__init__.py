"""SOAP support: WSDL loading, operation-to-model mapping and generation.

Quick usage::

    from loopgen.soap import SoapGenerator, SoapRequest

    gen = SoapGenerator(workspace)
    await gen.generate(SoapRequest(datasource="soapds", binding="CalculatorSoap"))
"""

from loopgen.soap.generator import SoapGenerator, SoapRequest
from loopgen.soap.mapper import OperationMapping, map_binding, map_operation
from loopgen.soap.wsdl import WsdlLoader, parse_wsdl

__all__ = [
    "OperationMapping",
    "SoapGenerator",
    "SoapRequest",
    "WsdlLoader",
    "map_binding",
    "map_operation",
    "parse_wsdl",
]

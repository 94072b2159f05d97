"""readiness_gov.integrations — outbound gateways.

All outbound HTTP calls go through a gateway in this package, never via
bare `requests` calls in services or blueprints. Gateways return structured
result objects and never raise for HTTP or network failures.

Current gateways:
  evaluator_gateway.EvaluatorGateway — legal + operational compliance evaluators
"""

"""
API Gateway Service package for Janus.

The gateway fronts a handful of outbound APIs, enforcing:
- Authentication: ES256 tokens checked in-process against one public key
- Uniform errors: every failure is answered with ``{"code": 1}``

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.cli: ``server`` / ``generate-jwt`` / ``version`` commands.
- app.aliyun: V3 request signing, CDN client, bucket URL map.
- app.auth: token issuance/verification and request authenticator.
- app.adapters: HTTP clients for other remote APIs (Bilibili).
- app.domain: request models and the workflows behind each route.
"""

from __future__ import annotations
import logging
import uuid
from typing import Optional

from fastapi import Request, Response
from jose import JWTError, jwt

from .settings import settings

logger = logging.getLogger(__name__)

USER_COOKIE = "veritas_user"
ANON_COOKIE = "veritas_anon"


def _bearer_subject(request: Request) -> Optional[str]:
	header = request.headers.get("authorization") or ""
	scheme, _, token = header.partition(" ")
	if scheme.lower() != "bearer" or not token:
		return None
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		logger.info("Ignoring bearer token that failed verification")
		return None
	sub = payload.get("sub")
	return str(sub) if sub else None


def resolve_user_id(request: Request, response: Response) -> str:
	"""Resolve the caller to a stable opaque user id.

	Order: onboarding cookie, verified bearer token subject, then a persistent
	anonymous id that is issued as a cookie on first contact.
	"""
	user_id = request.cookies.get(USER_COOKIE)
	if user_id:
		return user_id
	user_id = _bearer_subject(request)
	if user_id:
		return user_id
	anon_id = request.cookies.get(ANON_COOKIE)
	if not anon_id:
		anon_id = str(uuid.uuid4())
		response.set_cookie(
			ANON_COOKIE,
			anon_id,
			max_age=settings.anon_cookie_max_age,
			httponly=True,
			samesite="lax",
			path="/",
		)
		logger.info("Issued new anonymous id %s", anon_id)
	return anon_id

"""Usage metering — charges one credit per chat message on metered plans and writes an audit record.

Metering is best-effort: any account-store or audit-sink failure is logged and swallowed,
since the answer has already been generated by the time the meter runs.
"""

from __future__ import annotations

import logging

from sharkmind.models import CREDITS_PER_MESSAGE, FALLBACK_PROVIDER_ID, AdvisorConfig, UsageRecord
from sharkmind.storage import AccountStore, AuditSink

logger = logging.getLogger("sharkmind.metering")


def estimate_cost(model_name: str, tokens_used: int) -> float:
    """Upper-bound USD cost of ``tokens_used`` tokens from LiteLLM's pricing table.

    Providers only report a total here, so every token is priced as a completion token.
    Unknown models and the fallback path cost 0.0.
    """
    if not model_name or model_name == FALLBACK_PROVIDER_ID or tokens_used <= 0:
        return 0.0
    try:
        import litellm
        _, completion_cost = litellm.cost_per_token(
            model=model_name, prompt_tokens=0, completion_tokens=tokens_used
        )
        return float(completion_cost)
    except Exception:
        return 0.0


class UsageMeter:
    """Decrements credits for free/basic accounts and records every metered message.

    Usage:
        meter = UsageMeter(accounts=store, audit=store, config=config)
        await meter.meter(user_id=7, provider_id="claude", tokens_used=812)
    """

    def __init__(self, accounts: AccountStore, audit: AuditSink, config: AdvisorConfig | None = None):
        self.accounts = accounts
        self.audit = audit
        self.config = config

    def _model_name(self, provider_id: str) -> str:
        if provider_id == FALLBACK_PROVIDER_ID:
            return FALLBACK_PROVIDER_ID
        if self.config and provider_id in self.config.providers:
            return self.config.providers[provider_id].model_name
        return ""

    async def meter(
        self,
        user_id: int,
        provider_id: str,
        tokens_used: int,
        model_name: str | None = None,
    ) -> None:
        """Charge a flat credit (independent of ``tokens_used``) and append one UsageRecord."""
        try:
            account = await self.accounts.get_account(user_id)
            if account and account.is_metered and account.credits > 0:
                await self.accounts.decrement_credit(user_id)
                logger.debug(f"User {user_id} charged {CREDITS_PER_MESSAGE} credit ({account.credits - 1} left)")
        except Exception as e:
            logger.warning(f"Credit decrement failed for user {user_id}: {e}")

        model = model_name or self._model_name(provider_id)
        try:
            await self.audit.record(UsageRecord(
                user_id=user_id,
                provider_id=provider_id,
                model_name=model,
                tokens_used=max(0, tokens_used),
                estimated_cost=estimate_cost(model, tokens_used),
            ))
        except Exception as e:
            logger.warning(f"Usage record failed for user {user_id}: {e}")

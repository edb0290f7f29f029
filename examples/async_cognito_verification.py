import asyncio
import contextlib
import os

from anyio import create_task_group

from coreason_jwt import CoreasonJwtError, JwksCache, create_cognito_verifier


async def main() -> None:
    """
    Demonstrates async verification of Cognito access tokens.
    Includes:
    - TaskGroup for concurrency
    - A shared JWKS cache: concurrent misses trigger a single JWKS fetch
    - Retries with backoff and OpenTelemetry instrumentation (internal to HttpxJsonFetcher)
    """
    print(">>> Starting Async Cognito Verification Example")

    user_pool_id = os.getenv("EXAMPLE_USER_POOL_ID", "eu-west-1_AbCdEfGhI")
    tokens = os.getenv("EXAMPLE_TOKENS", "").split()
    if not tokens:
        print(">>> Set EXAMPLE_TOKENS to one or more access tokens to verify")
        return

    jwks_cache = JwksCache()
    try:
        async with create_cognito_verifier(
            user_pool_id=user_pool_id,
            token_use="access",
            client_id=os.getenv("EXAMPLE_CLIENT_ID"),
            jwks_cache=jwks_cache,
        ) as verifier:
            print(f">>> Verifier initialized for {verifier.expected_issuers[0]}")

            async def verify(index: int, token: str) -> None:
                try:
                    payload = await verifier.verify(token)
                    print(f"    - Token {index}: valid, sub={payload.get('sub')}")
                except CoreasonJwtError as e:
                    print(f"    - Token {index}: rejected ({type(e).__name__}: {e})")

            print(">>> Verifying tokens concurrently...")
            async with create_task_group() as tg:
                for index, token in enumerate(tokens):
                    tg.start_soon(verify, index, token)

            print(">>> Concurrent verification finished.")
    finally:
        await jwks_cache.aclose()


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())

"""Registry trust client: manifests, version resolution, and verification.

``RegistryClient`` fetches package documents and registry signing keys
through a throttled ``HttpClient``, resolves a requested specifier to one
concrete version, and verifies registry signatures and build attestations
for that version.

Only package names ever appear in registry URLs. Ranges such as ``^1.2.0``
are resolved locally against the packument's ``versions`` so that trust
checks always run against the exact version that would be installed.

Usage::

    client = RegistryClient(HttpClient(throttle))
    manifest = await client.get_manifest(PackageSpec.parse("express@^4"))
    keys = await client.fetch_keys()
    manifest = client.verify_signatures(manifest, keys)
    manifest = await client.verify_attestations(manifest, keys)
"""

from __future__ import annotations

import asyncio
import binascii
import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote, urlsplit

from trustgate.exceptions import (
    ExpiredKeyError,
    InvalidSignatureError,
    MissingKeyError,
    NetworkError,
    NotFoundError,
    SubjectMismatchError,
    VerificationFailureError,
)
from trustgate.registry.attestations import BundleVerifier, DsseVerifier, to_purl
from trustgate.registry.crypto import integrity_hex_digest, load_public_key, verify_signature
from trustgate.registry.http_client import HttpClient
from trustgate.registry.models import (
    MISSING_TIME_CUTOFF,
    AttestationBundle,
    Manifest,
    PackageSpec,
    Packument,
    RegistryKey,
    parse_timestamp,
)
from trustgate.registry.semver import max_satisfying

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_REGISTRY: str = "https://registry.npmjs.org"
DEFAULT_DOWNLOADS_API: str = "https://api.npmjs.org"
KEYS_PATH: str = "/-/npm/v1/keys"


def resolve_version(packument: Packument, specifier: str) -> str:
    """Resolve a dist-tag, exact version, or range to a concrete version.

    Dist-tags take precedence; otherwise the highest version in
    ``packument.versions`` satisfying the range is chosen.

    Raises:
        NotFoundError: If nothing matches or the resolved version is absent.
    """
    spec = specifier.strip() or "latest"
    version = packument.dist_tags.get(spec)
    if version is None:
        try:
            version = max_satisfying(packument.versions.keys(), spec)
        except ValueError:
            version = None
    if version is None:
        raise NotFoundError(
            f"Could not resolve {spec!r} to a published version of {packument.name}",
            package_id=f"{packument.name}@{spec}",
        )
    if version not in packument.versions:
        raise NotFoundError(
            f"Version {version} not found for package {packument.name}",
            package_id=f"{packument.name}@{version}",
        )
    return version


def _publish_moment(manifest: Manifest) -> datetime:
    try:
        return parse_timestamp(manifest.publish_time or MISSING_TIME_CUTOFF)
    except ValueError:
        logger.debug("Unparsable publish time for %s, using cutoff", manifest.package_id)
        return parse_timestamp(MISSING_TIME_CUTOFF)


def _require_unexpired(key: RegistryKey, moment: datetime, prefix: str, **context: Any) -> None:
    """Raise unless ``key`` was still valid at ``moment``.

    ``prefix`` starts the message, e.g. ``"pkg@1.0.0 has attestations with keyid: K"``.
    """
    try:
        valid = key.valid_at(moment)
    except ValueError as exc:
        raise MissingKeyError(
            f"{prefix} but the corresponding public key has an unreadable expiry: {key.expires!r}",
            **context,
        ) from exc
    if not valid:
        raise ExpiredKeyError(
            f"{prefix} but the corresponding public key has expired {key.expires}",
            **context,
        )


class RegistryClient:
    """Fetch and verify package metadata from an npm-compatible registry.

    Packuments are cached per package name for the lifetime of the client;
    concurrent requests for the same name share one in-flight fetch. Signing
    keys are fetched at most once.

    Args:
        http: Throttled HTTP client used for every request.
        registry_url: Registry base URL (no trailing slash needed).
        downloads_url: Downloads API base URL.
        bundle_verifier: Proof check for attestation bundles.
    """

    def __init__(
        self,
        http: HttpClient,
        *,
        registry_url: str = DEFAULT_REGISTRY,
        downloads_url: str = DEFAULT_DOWNLOADS_API,
        bundle_verifier: BundleVerifier | None = None,
    ) -> None:
        self.http = http
        self.registry_url = registry_url.rstrip("/")
        self.downloads_url = downloads_url.rstrip("/")
        self._verify_bundle = bundle_verifier or DsseVerifier()
        self._packuments: dict[str, asyncio.Task[Packument]] = {}
        self._keys: asyncio.Task[list[RegistryKey]] | None = None

    # -- fetching ----------------------------------------------------------

    async def get_packument(self, name: str) -> Packument:
        """Return the full registry document for ``name``.

        Raises:
            NotFoundError: If the registry has no such package.
            NetworkError: On transport failures.
        """
        task = self._packuments.get(name)
        if task is None:
            task = asyncio.ensure_future(self._fetch_packument(name))
            self._packuments[name] = task
        else:
            logger.debug("Packument cache hit for %s", name)
        return await asyncio.shield(task)

    async def _fetch_packument(self, name: str) -> Packument:
        url = f"{self.registry_url}/{PackageSpec(name).escaped_name}"
        try:
            data = await self.http.get_json(url)
        except NotFoundError as exc:
            raise NotFoundError(f"Package {name} not found in registry", package_id=name) from exc
        if not isinstance(data, dict):
            raise NetworkError(f"Unexpected packument format for {name}", url=url, package_id=name)
        return Packument(name=name, data=data)

    async def get_manifest(self, spec: PackageSpec) -> Manifest:
        """Resolve ``spec`` to one concrete version and return its manifest.

        Raises:
            NotFoundError: If the package, dist-tag or version is absent.
            NetworkError: On transport failures.
        """
        packument = await self.get_packument(spec.name)
        version = resolve_version(packument, spec.version_specifier)
        return Manifest(
            name=spec.name,
            version=version,
            data=packument.version_data(version),
            publish_time=packument.time.get(version),
        )

    async def fetch_keys(self) -> list[RegistryKey]:
        """Return the registry's signing keys, fetching them on first use.

        Raises:
            NetworkError: If the keys cannot be fetched or parsed.
        """
        if self._keys is None:
            self._keys = asyncio.ensure_future(self._fetch_keys())
        return await asyncio.shield(self._keys)

    async def _fetch_keys(self) -> list[RegistryKey]:
        url = f"{self.registry_url}{KEYS_PATH}"
        try:
            data = await self.http.get_json(url)
        except NotFoundError as exc:
            raise NetworkError(f"Registry keys not available at {url}", url=url) from exc
        raw = data.get("keys") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            raise NetworkError(f"Unexpected registry keys format from {url}", url=url)
        keys = [RegistryKey.from_dict(k) for k in raw if isinstance(k, dict)]
        logger.info("Fetched %d registry signing keys", len(keys))
        return keys

    async def get_download_count(self, name: str) -> int | None:
        """Return last month's download count, or None if unavailable."""
        url = f"{self.downloads_url}/downloads/point/last-month/{quote(name, safe='@/')}"
        data = await self.http.get_json(url)
        downloads = data.get("downloads") if isinstance(data, dict) else None
        return downloads if isinstance(downloads, int) else None

    # -- verification ------------------------------------------------------

    def verify_signatures(self, manifest: Manifest, keys: list[RegistryKey]) -> Manifest:
        """Verify every registry signature on ``manifest``.

        The signed message is ``"{package_id}:{integrity}"``. A key counts as
        valid if it had not expired when the version was published.

        Returns:
            The manifest carrying the verified signature set.

        Raises:
            NotFoundError: If the version carries no signatures.
            MissingKeyError: If a signature's keyid is not a registry key,
                or the key's expiry cannot be read.
            ExpiredKeyError: If the key expired before the publish time.
            InvalidSignatureError: If a signature does not verify.
        """
        package_id = manifest.package_id
        signatures = manifest.signatures
        if not signatures:
            raise NotFoundError("Package has no signatures to verify", package_id=package_id)

        by_keyid = {key.keyid: key for key in keys}
        message = f"{package_id}:{manifest.integrity}".encode("utf-8")
        published = _publish_moment(manifest)

        for signature in signatures:
            key = by_keyid.get(signature.keyid)
            if key is None:
                raise MissingKeyError(
                    f"{package_id} has a registry signature with keyid: {signature.keyid} "
                    "but no corresponding public key can be found",
                    package_id=package_id,
                    keyid=signature.keyid,
                )
            _require_unexpired(
                key,
                published,
                f"{package_id} has a registry signature with keyid: {signature.keyid}",
                package_id=package_id,
                keyid=signature.keyid,
            )
            if not self._signature_matches(key, signature.sig, message):
                raise InvalidSignatureError(
                    f"{package_id} has an invalid registry signature with "
                    f"keyid: {key.keyid} and signature: {signature.sig}",
                    package_id=package_id,
                    keyid=key.keyid,
                )

        logger.debug("Verified %d signature(s) for %s", len(signatures), package_id)
        return manifest.with_signatures(signatures)

    @staticmethod
    def _signature_matches(key: RegistryKey, sig: str, message: bytes) -> bool:
        try:
            public_key = load_public_key(key.pem)
            signature = binascii.a2b_base64(sig)
        except (ValueError, binascii.Error):
            return False
        return verify_signature(public_key, signature, message)

    async def verify_attestations(self, manifest: Manifest, keys: list[RegistryKey]) -> Manifest:
        """Fetch and verify the attestation bundles for ``manifest``.

        For each bundle: a keyed bundle needs a registry key that was valid
        at the bundle's integrated time; the statement subject must name this
        package version and carry the tarball's sha512 digest; only then is
        the cryptographic proof checked. Keyless bundles rely on the proof
        check alone.

        Returns:
            The manifest carrying the verified bundles.

        Raises:
            NotFoundError: If the version has no attestations.
            MissingKeyError: If a keyed bundle references an unknown key,
                or the key's expiry cannot be read.
            ExpiredKeyError: If a key expired before the integrated time.
            SubjectMismatchError: If a statement subject does not match.
            VerificationFailureError: If a bundle cannot be decoded or its
                proof is rejected.
            NetworkError: On transport failures.
        """
        package_id = manifest.package_id
        url = manifest.attestations_url
        if not url:
            raise NotFoundError("Package has no attestations to verify", package_id=package_id)

        data = await self.http.get_json(self.registry_url + urlsplit(url).path)
        bundles = _parse_bundles(data)
        if not bundles:
            raise NotFoundError("Attestation collection is empty", package_id=package_id)

        by_keyid = {key.keyid: key for key in keys}
        keyids = {b.keyid for b in bundles if b.keyid}
        if keyids and not keyids & by_keyid.keys():
            raise MissingKeyError(
                f"{package_id} has attestations but no corresponding public key(s) can be found",
                package_id=package_id,
            )

        purl = to_purl(manifest.name, manifest.version)
        for bundle in bundles:
            self._verify_bundle_for(manifest, bundle, by_keyid, purl)

        logger.debug("Verified %d attestation(s) for %s", len(bundles), package_id)
        return manifest.with_attestations(bundles)

    def _verify_bundle_for(
        self,
        manifest: Manifest,
        bundle: AttestationBundle,
        by_keyid: dict[str, RegistryKey],
        purl: str,
    ) -> None:
        package_id = manifest.package_id
        keyid = bundle.keyid
        context: dict[str, Any] = {
            "package_id": package_id,
            "keyid": keyid,
            "predicate_type": bundle.predicate_type,
        }

        key: RegistryKey | None = None
        if keyid:
            key = by_keyid.get(keyid)
            if key is None:
                raise MissingKeyError(
                    f"{package_id} has attestations with keyid: {keyid} "
                    "but no corresponding public key can be found",
                    **context,
                )
            try:
                integrated = bundle.integrated_time
            except (ValueError, TypeError) as exc:
                raise VerificationFailureError(
                    f"{package_id} failed to verify attestation: {exc}", **context
                ) from exc
            _require_unexpired(
                key, integrated, f"{package_id} has attestations with keyid: {keyid}", **context
            )

        try:
            statement = bundle.statement()
        except (ValueError, TypeError, binascii.Error) as exc:
            raise VerificationFailureError(
                f"{package_id} has an undecodable attestation statement: {exc}", **context
            ) from exc

        if statement.subject_name != purl:
            raise SubjectMismatchError(
                f"{package_id} package name and version (PURL): {purl} "
                f"doesn't match what was signed: {statement.subject_name}",
                **context,
            )

        try:
            expected_digest = integrity_hex_digest(manifest.integrity)
        except ValueError as exc:
            raise SubjectMismatchError(
                f"{package_id} has no usable sha512 integrity to compare: {exc}", **context
            ) from exc
        if statement.subject_sha512 != expected_digest:
            raise SubjectMismatchError(
                f"{package_id} package integrity (hex digest): {expected_digest} "
                f"doesn't match what was signed: {statement.subject_sha512}",
                **context,
            )

        try:
            self._verify_bundle(bundle, key.pem if key else None)
        except Exception as exc:
            raise VerificationFailureError(
                f"{package_id} failed to verify attestation: {exc}", **context
            ) from exc


def _parse_bundles(data: Any) -> list[AttestationBundle]:  # noqa: ANN401
    raw = data.get("attestations") if isinstance(data, dict) else None
    if not isinstance(raw, list):
        return []
    bundles = []
    for item in raw:
        if isinstance(item, dict) and isinstance(item.get("bundle"), dict):
            bundles.append(AttestationBundle(
                predicate_type=str(item.get("predicateType", "")),
                bundle=item["bundle"],
            ))
    return bundles

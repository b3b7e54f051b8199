"""
KV2 secret store.

Implements the versioned read/write protocol of a KV version 2 engine,
including check-and-set (CAS) saves. Concurrent writers are arbitrated by the
server's CAS check alone; a ``ConcurrencyConflictError`` is an ordinary
outcome under contention and is never retried here.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from .auth import AuthMethod
from .envelope import AttributeMap, ResponseEnvelope
from .exceptions import AbsentResourceError, ConcurrencyConflictError, SecretExistsError
from .faults import FaultClassifier
from .models import (
    EngineSettings,
    ListOptions,
    SaveMode,
    SecretMetadata,
    VersionMetadata,
    VersionedSecret,
    join_path,
    normalize_path,
)
from .transport import Transport

logger = logging.getLogger(__name__)

PathLike = Union[str, VersionedSecret]

FOLDER_SUFFIX = "/"


def _path_of(path: PathLike) -> str:
    if isinstance(path, VersionedSecret):
        return path.full_path
    return normalize_path(path)


@runtime_checkable
class SecretStore(Protocol):
    """Capability implemented by versioned secret stores."""

    async def save(
        self,
        auth: AuthMethod,
        secret: VersionedSecret,
        mode: SaveMode,
        expected_version: int = 0,
    ) -> int: ...

    async def read(self, auth: AuthMethod, path: PathLike, version: int = 0) -> Optional[VersionedSecret]: ...

    async def list(self, auth: AuthMethod, path: PathLike = "", options: Optional[ListOptions] = None) -> List[str]: ...

    async def delete(self, auth: AuthMethod, path: PathLike, version: int = 0, recursive: bool = False) -> bool: ...

    async def undelete(self, auth: AuthMethod, path: PathLike, version: int) -> bool: ...

    async def destroy(self, auth: AuthMethod, path: PathLike, version: int) -> bool: ...

    async def destroy_all(self, auth: AuthMethod, path: PathLike) -> bool: ...

    async def get_metadata(self, auth: AuthMethod, path: PathLike) -> SecretMetadata: ...


class KV2SecretStore:
    """
    Versioned secret store on a KV2 mount.

    A store is the composition of a transport, a mount point and a fault
    classifier. Credentials are passed to each call.
    """

    def __init__(
        self,
        transport: Transport,
        mount_point: str = "secret",
        classifier: Optional[FaultClassifier] = None,
    ):
        """
        Initialize the store.

        Args:
            transport: Transport used for every request
            mount_point: Mount point of the KV2 engine, without the /v1/ prefix
            classifier: Optional fault classifier (defaults to the built-in rules)
        """
        self.transport = transport
        self.mount_point = normalize_path(mount_point)
        if not self.mount_point:
            raise ValueError("mount_point must not be empty")
        self.classifier = classifier or FaultClassifier()

    def __repr__(self) -> str:
        return f"<KV2SecretStore mount={self.mount_point!r}>"

    def _url(self, section: str, path: str = "") -> str:
        return join_path(self.mount_point, section, path)

    async def _call(
        self,
        auth: Optional[AuthMethod],
        method: str,
        url: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        response = await self.transport.send(method, url, auth=auth, json=json, params=params)
        envelope = ResponseEnvelope(response.status_code, response.body)
        return self.classifier.raise_for_status(envelope)

    # Versioned data

    async def save(
        self,
        auth: AuthMethod,
        secret: VersionedSecret,
        mode: SaveMode,
        expected_version: int = 0,
    ) -> int:
        """
        Save the secret's attributes as a new version.

        The full attribute set is replaced; nothing is merged with the prior
        version. On success ``secret.version`` and ``secret.metadata`` are
        updated.

        Args:
            auth: Credential context
            secret: Secret to save
            mode: When the save may proceed
            expected_version: Current version of the secret, required for
                ``SaveMode.UPDATE_IF_VERSION_MATCHES``

        Returns:
            The new version number

        Raises:
            ConcurrencyConflictError: ``expected_version`` is not the current version
            SecretExistsError: ``CREATE_ONLY`` and the path already has versions
            CasRequiredError: The path enforces CAS and mode is ``ALWAYS_OVERWRITE``
        """
        options: Dict[str, int] = {}
        if mode is SaveMode.CREATE_ONLY:
            options["cas"] = 0
        elif mode is SaveMode.UPDATE_IF_VERSION_MATCHES:
            if expected_version <= 0:
                raise ValueError(
                    "UPDATE_IF_VERSION_MATCHES requires expected_version to be the current version (> 0)"
                )
            options["cas"] = expected_version

        path = secret.full_path
        body = {"options": options, "data": dict(secret.attributes)}

        try:
            envelope = await self._call(auth, "POST", self._url("data", path), json=body)
        except ConcurrencyConflictError as e:
            if mode is SaveMode.CREATE_ONLY:
                logger.info(f"Create-only save of {path} rejected: secret already exists")
                raise SecretExistsError(
                    f"Secret {path} already exists: {e.message}",
                    status_code=e.status_code,
                    expected_version=0,
                ) from e
            logger.info(f"Save of {path} rejected: version {expected_version} is not current")
            raise ConcurrencyConflictError(
                f"Version {expected_version} of {path} is not the current version: {e.message}",
                status_code=e.status_code,
                expected_version=expected_version,
            ) from e

        metadata = envelope.extract(VersionMetadata, "data")
        secret.version = metadata.version
        secret.metadata = metadata
        logger.debug(f"Saved {path} as version {metadata.version}")
        return metadata.version

    async def read(self, auth: AuthMethod, path: PathLike, version: int = 0) -> Optional[VersionedSecret]:
        """
        Read a secret.

        Args:
            auth: Credential context
            path: Secret path
            version: Version to read; 0 reads the most recent one

        Returns:
            The secret as it was at that version, or None if it does not exist
            (or the version is soft deleted or destroyed)
        """
        if version < 0:
            raise ValueError("version must be >= 0")
        path = _path_of(path)
        params = {"version": version} if version > 0 else None

        try:
            envelope = await self._call(auth, "GET", self._url("data", path), params=params)
        except AbsentResourceError:
            logger.debug(f"No readable secret at {path} (version {version or 'latest'})")
            return None

        attributes = envelope.extract(Optional[AttributeMap], "data.data") or {}
        metadata = envelope.extract(VersionMetadata, "data.metadata")
        return VersionedSecret(
            name=path,
            attributes=attributes,
            version=metadata.version,
            metadata=metadata,
        )

    async def list(self, auth: AuthMethod, path: PathLike = "", options: Optional[ListOptions] = None) -> List[str]:
        """
        List the children of a path.

        A missing path lists as empty: the store cannot tell "no children"
        apart from "never created" at this endpoint. Folder names keep their
        trailing separator.

        Args:
            auth: Credential context
            path: Parent path; empty for the mount root
            options: Filtering, recursion and naming options
        """
        options = options or ListOptions()
        path = _path_of(path)

        try:
            envelope = await self._call(auth, "GET", self._url("metadata", path), params={"list": "true"})
        except AbsentResourceError:
            logger.debug(f"Nothing to list at {path or '<root>'}")
            return []

        names: List[str] = envelope.extract(List[str], "data.keys")

        if options.full_paths:
            names = [join_path(path, name) + (FOLDER_SUFFIX if name.endswith(FOLDER_SUFFIX) else "") for name in names]

        if options.recurse and not options.leaves_only:
            nested: List[str] = []
            for name in names:
                if name.endswith(FOLDER_SUFFIX):
                    nested.extend(await self.list(auth, name, options))
            names = names + nested

        if options.parents_only:
            names = [name for name in names if name.endswith(FOLDER_SUFFIX)]
        elif options.leaves_only:
            names = [name for name in names if not name.endswith(FOLDER_SUFFIX)]

        return names

    async def delete(self, auth: AuthMethod, path: PathLike, version: int = 0, recursive: bool = False) -> bool:
        """
        Soft delete a version of a secret (the current one when version is 0).

        The payload is kept and can be restored with ``undelete``. With
        ``recursive`` the current version of every secret below the path is
        soft deleted first, deepest first.
        """
        if version < 0:
            raise ValueError("version must be >= 0")
        path = _path_of(path)

        if recursive:
            children = await self.list(auth, path, ListOptions(recurse=True))
            for child in reversed(children):
                if not child.endswith(FOLDER_SUFFIX):
                    await self.delete(auth, child)

        try:
            if version == 0:
                await self._call(auth, "DELETE", self._url("data", path))
            else:
                await self._call(auth, "POST", self._url("delete", path), json={"versions": [version]})
        except AbsentResourceError:
            logger.debug(f"Delete of missing secret {path} treated as done")
        return True

    async def undelete(self, auth: AuthMethod, path: PathLike, version: int) -> bool:
        """Restore a soft deleted version. Destroyed versions stay destroyed."""
        if version <= 0:
            raise ValueError("version must be > 0")
        path = _path_of(path)
        await self._call(auth, "POST", self._url("undelete", path), json={"versions": [version]})
        return True

    async def destroy(self, auth: AuthMethod, path: PathLike, version: int) -> bool:
        """Irreversibly remove one version's payload.

        The version number stays listed in the metadata as destroyed.
        """
        if version <= 0:
            raise ValueError("version must be > 0")
        path = _path_of(path)
        await self._call(auth, "POST", self._url("destroy", path), json={"versions": [version]})
        return True

    async def destroy_all(self, auth: AuthMethod, path: PathLike) -> bool:
        """Irreversibly purge every version and all metadata of a path."""
        path = _path_of(path)
        try:
            await self._call(auth, "DELETE", self._url("metadata", path))
        except AbsentResourceError:
            logger.debug(f"Purge of missing secret {path} treated as done")
        return True

    # Metadata and settings

    async def get_metadata(self, auth: AuthMethod, path: PathLike) -> SecretMetadata:
        """
        Read the version history summary of a secret.

        Raises:
            AbsentResourceError: The path has no versions (or was purged)
        """
        path = _path_of(path)
        envelope = await self._call(auth, "GET", self._url("metadata", path))
        return envelope.extract(SecretMetadata, "data")

    async def update_secret_settings(
        self,
        auth: AuthMethod,
        path: PathLike,
        max_versions: Optional[int] = None,
        cas_required: Optional[bool] = None,
    ) -> bool:
        """Change how many versions a secret keeps and whether saves need CAS."""
        body: Dict[str, Any] = {}
        if max_versions is not None:
            body["max_versions"] = max_versions
        if cas_required is not None:
            body["cas_required"] = cas_required
        if not body:
            raise ValueError("Nothing to update")
        await self._call(auth, "POST", self._url("metadata", _path_of(path)), json=body)
        return True

    async def get_engine_settings(self, auth: AuthMethod) -> EngineSettings:
        envelope = await self._call(auth, "GET", self._url("config"))
        return envelope.extract(EngineSettings, "data")

    async def configure_engine(self, auth: AuthMethod, max_versions: int = 10, cas_required: bool = False) -> bool:
        """Set the mount-wide version limit and CAS requirement."""
        body = {"max_versions": max_versions, "cas_required": cas_required}
        await self._call(auth, "POST", self._url("config"), json=body)
        return True

"""
PasswordStore: the facade every CLI command goes through.

It wires the components together for one invocation and sequences each
command: load the recipient set, touch the index and/or records through
the artifact pipeline, then record an audit commit. Commit messages
only ever name record IDs.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from .atomic import ArtifactPipeline, AtomicWriter
from .clipboard import ClipboardHandoff
from .editor import Editor
from .errors import PassManagerError, PreconditionError
from .gpg import EncryptionGateway, GpgGateway
from .ids import rand_id
from .index import EncryptedIndex, validate_path
from .models import CharsetLevel, InitResult, RecipientSet, StoreConfig
from .recipients import RecipientManager
from .records import EditorFn, SecretRecordStore
from .tempfiles import SecureTempRegistry
from .tree import render_tree
from .vcs import GitAudit

logger = logging.getLogger("passmanager.store")


class PasswordStore:
    """One password store directory and its collaborators."""

    def __init__(
        self,
        config: StoreConfig,
        registry: SecureTempRegistry,
        gateway: Optional[EncryptionGateway] = None,
        editor: Optional[EditorFn] = None,
        vcs: Optional[GitAudit] = None,
        clipboard: Optional[ClipboardHandoff] = None,
    ):
        self.config = config
        self.registry = registry
        self.gateway = gateway or GpgGateway.from_config(config)
        self.pipeline = ArtifactPipeline(
            self.gateway, AtomicWriter(registry, config.replace_strategy)
        )
        self.index = EncryptedIndex(config.index_path, self.pipeline)
        self.records = SecretRecordStore(
            config.store_dir, self.pipeline, registry, id_length=config.id_length
        )
        self.recipients = RecipientManager(
            config.store_dir, config.recipients_path, self.pipeline, self.index, self.records
        )
        self.editor = editor or Editor(config.editor)
        self.vcs = vcs or GitAudit(
            config.store_dir, bool(config.use_git), self.gateway.textconv_command()
        )
        self.clipboard = clipboard or ClipboardHandoff(config.clip_time)

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def init(self, recipients: Sequence[str], force: bool = False) -> InitResult:
        """Create the store or rotate it to a new recipient set.

        Raises:
            PreconditionError: No recipient given, or store exists without force.
            RotationUnchangedError: The set is already in use.
            PartialRotationError: Rotation stopped part way; run it again.
        """
        try:
            new_set = RecipientSet.of(*recipients)
        except ValidationError as exc:
            raise PreconditionError("no recipient defined") from exc

        result = self.recipients.init(new_set, force=force)
        if result.created:
            self.vcs.init_repo()
        else:
            self.vcs.commit("password store re-encrypted with different keys")
        return result

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def require_store(self) -> None:
        if not self.config.store_dir.is_dir():
            raise PreconditionError("password store is empty: please run 'passmanager init'")

    def resolve(self, path: str) -> str:
        """Record ID for ``path``.

        Raises:
            PreconditionError: If the path is not in the index.
        """
        record_id = self.index.lookup_by_path(path)
        if record_id is None:
            raise PreconditionError(f"{path} is not in the password store")
        return record_id

    def tree(self) -> list[str]:
        self.require_store()
        return render_tree(self.index.paths())

    def find(self, terms: Sequence[str]) -> list[str]:
        return render_tree(self.index.find(terms))

    def show(self, path: str) -> str:
        self.require_store()
        return self.records.read(self.resolve(path))

    def show_line(self, path: str, line_number: int = 1) -> str:
        self.require_store()
        try:
            return self.records.read_line(self.resolve(path), line_number)
        except PreconditionError as exc:
            raise PreconditionError(f"{exc} of {path}") from exc

    def clip(self, path: str, line_number: int = 1) -> str:
        """Copy one line of a record to the clipboard.

        Returns:
            str: The path, for the confirmation message.
        """
        value = self.show_line(path, line_number)
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise PreconditionError(
                f"line {line_number} of {path} is not valid UTF-8 text and cannot be copied"
            ) from exc
        self.clipboard.copy(value, path)
        return path

    def path_of(self, record_id: str) -> Optional[str]:
        """Reverse lookup, used to decode audit commit messages.

        Returns:
            The path, or None when the store holds no index yet.

        Raises:
            PreconditionError: If the index exists but lacks the ID.
        """
        if not self.index.exists():
            return None
        path = self.index.lookup_by_id(record_id)
        if path is None:
            raise PreconditionError(f"no password with id {record_id} in password store")
        return path

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _index_new_record(self, path: str, record_id: str, recipients: RecipientSet) -> None:
        """Insert a freshly written record, deleting it if the insert fails."""
        try:
            self.index.insert(path, record_id, recipients)
        except PassManagerError:
            logger.warning("Index insert failed, removing orphan record %s", record_id)
            self.records.delete(record_id)
            raise

    def generate(
        self,
        path: str,
        length: Optional[int] = None,
        symbols: bool = True,
        inplace: bool = False,
        force: bool = False,
    ) -> str:
        """Generate a password for ``path``.

        A new path gets a new record. An existing one needs ``inplace``
        (swap line 1, keep the rest) or ``force`` (replace everything).

        Returns:
            str: The record ID.
        """
        if inplace and force:
            raise PreconditionError("--in-place and --force cannot be combined")
        length = self.config.pass_length if length is None else length
        if length < 1:
            raise PreconditionError(f"password length must be positive, got {length}")

        recipients = self.recipients.load()
        level = CharsetLevel.SYMBOLS if symbols else CharsetLevel.CAPITALS
        password = rand_id(length, level)
        record_id = self.index.lookup_by_path(path)

        if record_id is not None:
            if inplace:
                self.records.replace_first_line(record_id, password, recipients)
            elif force:
                self.records.replace_all(record_id, password + "\n", recipients)
            else:
                raise PreconditionError(f"{path} already exists: use -f or -i option to overwrite")
            self.vcs.commit(f"replaced password for {record_id}")
            return record_id

        validate_path(path)
        record_id = self.records.create(password + "\n", recipients)
        self._index_new_record(path, record_id, recipients)
        self.vcs.commit(f"generated new password for {record_id}")
        return record_id

    def edit(self, path: str) -> tuple[str, bool]:
        """Edit the record at ``path``, or create one pre-filled with a password.

        Returns:
            tuple[str, bool]: Record ID and whether it was created.
        """
        recipients = self.recipients.load()
        record_id = self.index.lookup_by_path(path)

        if record_id is not None:
            self.records.edit(record_id, recipients, self.editor)
            self.vcs.commit(f"edited password for {record_id}")
            return record_id, False

        validate_path(path)
        initial = rand_id(self.config.pass_length, CharsetLevel.SYMBOLS) + "\n"
        record_id, _ = self.records.edit(None, recipients, self.editor, initial=initial)
        self._index_new_record(path, record_id, recipients)
        self.vcs.commit(f"generated new password for {record_id}")
        return record_id, True

    def delete(self, path: str) -> str:
        """Remove ``path`` from the index and wipe its record.

        Returns:
            str: The deleted record ID.
        """
        record_id = self.resolve(path)
        self.records.require(record_id)
        recipients = self.recipients.load()
        self.index.remove(record_id, recipients)
        self.records.delete(record_id)
        self.vcs.commit(f"delete {record_id} from password store")
        return record_id

    def move(self, src: str, dst: str, force: bool = False) -> tuple[str, str]:
        return self._transfer(src, dst, force, move=True)

    def copy(self, src: str, dst: str, force: bool = False) -> tuple[str, str]:
        return self._transfer(src, dst, force, move=False)

    def _transfer(self, src: str, dst: str, force: bool, move: bool) -> tuple[str, str]:
        """Copy or move a secret to a new path under its own record ID.

        The content is re-encrypted into the destination record, so the
        two paths never share a ciphertext.

        Returns:
            tuple[str, str]: Source and destination record IDs.
        """
        if src == dst:
            raise PreconditionError("old-path and new-path cannot be the same")
        src_id = self.resolve(src)
        self.records.require(src_id)
        validate_path(dst)
        dst_id = self.index.lookup_by_path(dst)
        if dst_id is not None and not force:
            raise PreconditionError(f"{dst} already exists: use -f option to replace")

        recipients = self.recipients.load()
        if dst_id is not None:
            self.index.remove(dst_id, recipients)
            self.records.delete(dst_id)
        else:
            dst_id = self.records.allocate_id()

        self.records.duplicate(src_id, dst_id, recipients)
        self._index_new_record(dst, dst_id, recipients)

        if move:
            self.index.remove(src_id, recipients)
            self.records.delete(src_id)
            self.vcs.commit(f"moved password {src_id} to {dst_id}")
        else:
            self.vcs.commit(f"copied password {src_id} to {dst_id}")
        return src_id, dst_id

    def git(self, args: Sequence[str]) -> int:
        return self.vcs.run(args)

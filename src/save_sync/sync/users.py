"""Resolution of the local user owning this machine's saves."""

import logging
from typing import Optional

from ..config.settings import ConfigManager, SyncConfig
from ..errors import AmbiguousUserError, MetadataStoreError
from ..store import EditUser, MetadataStore, NewUser, User, UserQuery

logger = logging.getLogger(__name__)


def resolve_local_user(store: MetadataStore, config: SyncConfig,
                       config_manager: Optional[ConfigManager] = None) -> User:
    """Find or create the user named by ``config.local_username``.

    On first run the user is created. If the database holds exactly one
    other user, that user is adopted and the configured username is
    rewritten to match, persisted through ``config_manager`` when given.

    Raises:
        AmbiguousUserError: Several users exist and none matches the
            configured username
    """
    username = config.local_username
    user = store.get_user(UserQuery().with_username(username))
    if user is not None:
        return user

    users = store.get_all_users()
    if users is None:
        logger.info(f"First run, creating local user {username}")
        store.create_user(NewUser(username=username))
        user = store.get_user(UserQuery().with_username(username))
        if user is None:
            raise MetadataStoreError(f"Unable to retrieve user {username} right after creating it")
        return user

    if len(users) == 1:
        adopted = users[0]
        logger.warning(
            f"Configured user {username} not found, adopting the only existing user {adopted.username}"
        )
        config.local_username = adopted.username
        if config_manager is not None:
            config_manager.write(config)
        store.update_user(EditUser(id=adopted.id))
        return adopted

    names = ", ".join(u.username for u in users)
    raise AmbiguousUserError(
        f"User {username} does not exist and {len(users)} other users do ({names}); "
        f"manual resolution required: set local_username in the configuration file."
    )

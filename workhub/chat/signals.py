from django.db.models.signals import post_delete
from django.db.models.signals import post_save
from django.db.transaction import on_commit
from django.dispatch import receiver

from workhub.chat import cache as room_cache
from workhub.realtime.events.chat import publish_new_message

from .models import ChatRoom
from .models import ChatRoomMembership
from .models import Message


@receiver(post_save, sender=ChatRoom)
@receiver(post_delete, sender=ChatRoom)
def evict_room_cache(sender, instance, **kwargs):
    room_cache.invalidate_room(instance.pk)


@receiver(post_save, sender=ChatRoomMembership)
@receiver(post_delete, sender=ChatRoomMembership)
def evict_membership_cache(sender, instance, **kwargs):
    room_cache.invalidate_room(instance.room_id)


def _after_message_commit(message: Message) -> None:
    # Evicting before commit would let a concurrent reader re-cache stale views.
    room_cache.invalidate_message_views(message.room_id)
    publish_new_message(message)


@receiver(post_save, sender=Message)
def fan_out_new_message(sender, instance, created, **kwargs):
    if created:
        on_commit(lambda: _after_message_commit(instance))

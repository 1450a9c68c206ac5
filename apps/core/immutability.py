"""
Append-only model support.

Audit rows (lifecycle events) and intake snapshots are written once and
never changed. Both the instance API (save/delete) and the bulk queryset
API (update/delete) refuse mutation.
"""
from django.db import models


class ImmutableRecordError(Exception):
    """Raised when code tries to update or delete a write-once record."""
    pass


class AppendOnlyQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise ImmutableRecordError(f'{self.model.__name__} rows cannot be updated')

    def delete(self):
        raise ImmutableRecordError(f'{self.model.__name__} rows cannot be deleted')


class AppendOnlyModel(models.Model):
    """Abstract base for insert-only tables."""

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(f'{type(self).__name__} {self.pk} is immutable')
        kwargs['force_insert'] = True
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(f'{type(self).__name__} {self.pk} cannot be deleted')

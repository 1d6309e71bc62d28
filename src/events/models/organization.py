import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinLengthValidator, RegexValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from accounts.identity import MembershipRole
from accounts.models import RollcallUser
from common.models import TimeStampedModel

from .mixins import SlugFromNameMixin

slug_validator = RegexValidator(
    r"^[a-z0-9-]+$", _("Slug may only contain lowercase letters, digits and hyphens."), code="invalid_slug"
)


class OrganizationQuerySet(models.QuerySet["Organization"]):
    def for_user(self, user: RollcallUser) -> t.Self:
        """Organizations the user belongs to."""
        if user.is_superuser:
            return self.all()
        return self.filter(memberships__user=user).distinct()


class OrganizationManager(models.Manager["Organization"]):
    def get_queryset(self) -> OrganizationQuerySet:
        """Get base queryset."""
        return OrganizationQuerySet(self.model, using=self._db)

    def for_user(self, user: RollcallUser) -> OrganizationQuerySet:
        """Get queryset for user."""
        return self.get_queryset().for_user(user)


class Organization(SlugFromNameMixin, TimeStampedModel):
    name = models.CharField(max_length=255, validators=[MinLengthValidator(3)])
    slug = models.SlugField(max_length=255, unique=True, validators=[MinLengthValidator(3), slug_validator])
    description = models.TextField(max_length=500, blank=True, default="")
    logo_url = models.URLField(blank=True, null=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_organizations",
    )
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="member_organizations",
        through="events.OrganizationMember",
        blank=True,
    )

    objects = OrganizationManager()

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        """The slug is part of public URLs and cannot change once the organization exists."""
        super().clean()
        if self._state.adding:
            return
        stored_slug = Organization.objects.filter(pk=self.pk).values_list("slug", flat=True).first()
        if stored_slug is not None and stored_slug != self.slug:
            raise DjangoValidationError({"slug": _("The slug cannot be changed after creation.")})


class OrganizationMember(TimeStampedModel):
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="organization_memberships",
    )
    role = models.CharField(
        max_length=16, choices=MembershipRole.choices, default=MembershipRole.MEMBER, db_index=True
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["organization", "user"], name="unique_organization_member_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} @ {self.organization_id} ({self.role})"

import typing as t

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.text import slugify


class SlugFromNameMixin(models.Model):
    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Override save to auto-create slug."""
        if not self.slug:  # type: ignore[has-type]
            self.slug = slugify(self.name)  # type: ignore[attr-defined]
        super().save(*args, **kwargs)


class LocationMixin(models.Model):
    location_name = models.CharField(max_length=255)
    location_address = models.CharField(max_length=500)
    place_id = models.CharField(max_length=255, blank=True, help_text="External place reference (e.g. a maps place id)")
    latitude = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)]
    )
    longitude = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)]
    )

    class Meta:
        abstract = True

    def full_address(self) -> str:
        """Get the place name combined with its address."""
        if self.location_name and self.location_address:
            return f"{self.location_name}, {self.location_address}"
        return self.location_name or self.location_address or ""

"""
Attendance service: marking, the class register, statistics and analytics.

Marking is an upsert on (student, school_class, date). The register of a
class is saved inside one transaction.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q

from academics.models import Student

from .models import Attendance

logger = logging.getLogger(__name__)

Status = Attendance.Status


class AttendanceServiceError(Exception):
    """Attendance operation rejected."""
    pass


def attendance_rate(present, late, total):
    """Percent of records where the student was in class (Present or Late), 2 decimals."""
    if not total:
        return 0
    return round((present + late) / total * 100, 2)


class AttendanceService:

    @staticmethod
    def mark(tenant, student, school_class, date, status, notes='', marked_by=None):
        """
        Create or overwrite the record of `student` in `school_class` on `date`.

        Returns:
            (Attendance, created)
        """
        if student.tenant_id != tenant.pk or school_class.tenant_id != tenant.pk:
            raise AttendanceServiceError('Student and class must belong to this school.')
        if status not in Status.values:
            raise AttendanceServiceError(f'Invalid status: {status}')

        record, created = Attendance.objects.update_or_create(
            student=student,
            school_class=school_class,
            date=date,
            defaults={
                'tenant': tenant,
                'status': status,
                'notes': notes or '',
                'marked_by': marked_by,
            },
        )
        logger.info(
            f'Attendance {"created" if created else "updated"}: student={student.id} '
            f'class={school_class.id} date={date} status={status}'
        )
        return record, created

    @staticmethod
    @transaction.atomic
    def save_register(tenant, school_class, date, rows, marked_by=None):
        """
        Save the register of a class for one day.

        Args:
            rows: iterable of {'student': Student, 'status': str, 'notes': str}.
                  A student listed twice keeps the last row.

        Returns:
            {'count', 'created', 'updated', 'records'}
        """
        collapsed = {}
        for row in rows:
            collapsed[row['student'].pk] = row

        created_count = 0
        records = []
        for row in collapsed.values():
            record, created = AttendanceService.mark(
                tenant=tenant,
                student=row['student'],
                school_class=school_class,
                date=date,
                status=row['status'],
                notes=row.get('notes', ''),
                marked_by=marked_by,
            )
            created_count += int(created)
            records.append(record)

        logger.info(
            f'Register saved: class={school_class.id} date={date} '
            f'rows={len(records)} created={created_count}'
        )
        return {
            'count': len(records),
            'created': created_count,
            'updated': len(records) - created_count,
            'records': records,
        }

    @staticmethod
    def stats(queryset):
        """Counts per status and the attendance rate of a filtered queryset."""
        totals = queryset.aggregate(
            total=Count('id'),
            present=Count('id', filter=Q(status=Status.PRESENT)),
            absent=Count('id', filter=Q(status=Status.ABSENT)),
            late=Count('id', filter=Q(status=Status.LATE)),
            excused=Count('id', filter=Q(status=Status.EXCUSED)),
        )
        totals['attendance_rate'] = attendance_rate(totals['present'], totals['late'], totals['total'])
        return totals

    @staticmethod
    def analytics(tenant, school_class, start_date, end_date):
        """
        Daily counts and per-student summaries of one class over a date range.
        Students listed are the active students of the class.
        """
        if start_date > end_date:
            raise AttendanceServiceError('start_date must not be after end_date.')

        records = (
            Attendance.objects
            .filter(tenant=tenant, school_class=school_class, date__range=(start_date, end_date))
            .values('date', 'student_id', 'status')
            .order_by('date')
        )

        daily = {}
        per_student = {}
        for record in records:
            day = daily.setdefault(record['date'], {'present': 0, 'absent': 0, 'late': 0, 'excused': 0, 'total': 0})
            key = record['status'].lower()
            day[key] += 1
            day['total'] += 1
            counts = per_student.setdefault(record['student_id'], {'present': 0, 'absent': 0, 'late': 0, 'excused': 0})
            counts[key] += 1

        daily_data = [{'date': day.isoformat(), **counts} for day, counts in sorted(daily.items())]

        students = (
            Student.objects
            .filter(tenant=tenant, school_class=school_class, status=Student.Status.ACTIVE)
            .order_by('last_name', 'first_name')
        )
        student_summaries = []
        for student in students:
            counts = per_student.get(student.pk, {'present': 0, 'absent': 0, 'late': 0, 'excused': 0})
            total = sum(counts.values())
            student_summaries.append({
                'student_id': student.pk,
                'student_name': student.full_name,
                'admission_number': student.student_id,
                'present_days': counts['present'],
                'absent_days': counts['absent'],
                'late_days': counts['late'],
                'excused_days': counts['excused'],
                'attendance_rate': attendance_rate(counts['present'], counts['late'], total),
            })

        return {
            'daily_data': daily_data,
            'student_summaries': student_summaries,
            'total_days': len(daily_data),
        }

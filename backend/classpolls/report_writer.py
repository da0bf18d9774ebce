# Modules for report generation
import csv


def write_report(records, labels, stream):
    """
    Writes one CSV row per allocation record, in the order given.
    :param records: Store documents (newest first, as the store returns them).
    :param labels: Category labels, used as column headers.
    :param stream: Text stream to write to.
    """
    writer = csv.writer(stream)
    writer.writerow(["id", "createdAt", *labels, "total", "originalTotal"])
    for record in records:
        values = list(record.get("values") or [])
        # categories the record has no value for stay blank
        cells = [values[i] if i < len(values) else "" for i in range(len(labels))]
        created_at = record.get("createdAt")
        writer.writerow([
            record.get("id", ""),
            created_at.isoformat(sep=" ", timespec="seconds") if created_at else "",
            *cells,
            record.get("total", ""),
            record.get("originalTotal", ""),
        ])

from attendance_report import main

main()
